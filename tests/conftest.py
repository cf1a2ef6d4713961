"""Pytest configuration - stub metadata service and environment fixtures."""

import json
import threading
from collections import Counter
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from ac_metadata.sdk import MetadataClient

# =============================================================================
# Fixture Documents
# =============================================================================

APP_NAME = "reduce-worker"
POD_UUID = "26E56A04-F590-11E4-A66F-D7B3DD9DA696"
IMAGE_ID = (
    "sha512-8d3fffddf79e9a232ffd19f9ccaa4d6b37a6a243dbe0f23137b108a043d9da13"
    "121a9b505c804956b22e93c7f93969f4a7ba8ddea45bf4aab0bebc8f814e0990"
)

POD_MANIFEST = """{
    "acVersion": "0.5.1",
    "acKind": "PodManifest",
    "apps": [
        {
            "name": "reduce-worker",
            "image": {
                "name": "example.com/reduce-worker",
                "id": "sha512-8d3fffddf79e9a232ffd19f9ccaa4d6b37a6a243dbe0f23137b108a043d9da13121a9b505c804956b22e93c7f93969f4a7ba8ddea45bf4aab0bebc8f814e0990"
            },
            "annotations": [{"name": "foo", "value": "baz"}]
        },
        {
            "name": "backup",
            "image": {
                "name": "example.com/worker-backup",
                "id": "sha512-d603c29df0214c9b6681ed591871d40cc4bfabf9914383ce95ada0f2333defa7e97e21ca347e1d8dfde0b3edfe703688729cd25cec895a9a5b5c856da2f031fe",
                "labels": [{"name": "version", "value": "latest"}]
            }
        }
    ],
    "annotations": [{"name": "ip-address", "value": "10.1.2.3"}]
}"""

IMAGE_MANIFEST = """{
    "acKind": "ImageManifest",
    "acVersion": "0.5.1",
    "name": "example.com/reduce-worker",
    "labels": [
        {"name": "version", "value": "1.0.0"},
        {"name": "arch", "value": "amd64"},
        {"name": "os", "value": "linux"}
    ],
    "app": {
        "exec": ["/usr/bin/reduce-worker", "--quiet"],
        "user": "100",
        "group": "300",
        "eventHandlers": [
            {"name": "pre-start", "exec": ["/usr/bin/data-downloader"]},
            {"name": "post-stop", "exec": ["/usr/bin/deregister-worker", "--verbose"]}
        ],
        "environment": [
            {"name": "REDUCE_WORKER_DEBUG", "value": "true"}
        ],
        "isolators": [
            {"name": "resource/cpu", "value": {"limit": "20"}},
            {"name": "resource/memory", "value": {"limit": "1G"}},
            {"name": "os/linux/capabilities-revoke-set", "value": {"set": ["CAP_NET_BIND_SERVICE", "CAP_SYS_ADMIN"]}}
        ],
        "ports": [{"name": "health", "port": 4000, "protocol": "tcp", "socketActivated": true}]
    },
    "dependencies": [
        {
            "app": "example.com/reduce-worker-base",
            "imageID": "sha512-7fa909434c9683e9db38a56a35f83e838a2df25b9c6c13dd3d9ce25ec6463b3cac338c94289528cf5f8b9e70e9bcdf59246fe05e7b91489ee5fb9cb0c7db92cd",
            "labels": [
                {"name": "os", "value": "linux"},
                {"name": "env", "value": "canary"}
            ]
        }
    ],
    "pathWhitelist": ["/etc/ca/example.com/crt", "/usr/bin/map-reduce-worker", "/opt/libs/reduce-toolkit.so", "/etc/reduce-worker.conf", "/etc/systemd/system/"],
    "annotations": [
        {"name": "authors", "value": "Carly Container <carly@example.com>, Nat Network <[nat@example.com](mailto:nat@example.com)>"},
        {"name": "created", "value": "2014-10-27T19:32:27.67021798Z"},
        {"name": "documentation", "value": "https://example.com/docs"},
        {"name": "homepage", "value": "https://example.com"}
    ]
}"""

POD_ANNOTATIONS = [{"name": "ip-address", "value": "10.1.2.3"}]
APP_ANNOTATIONS = [{"name": "foo", "value": "baz"}]

PREFIX = "/acMetadata/v1/"


# =============================================================================
# Stub Metadata Service
# =============================================================================


@dataclass
class Route:
    """A canned response."""

    body: str | bytes = ""
    status: int = 200


class StubMetadataServer:
    """Threaded HTTP server answering /acMetadata/v1/ paths from a route table."""

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: Counter[str] = Counter()
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), self._handler_class())
        host, port = self._server.server_address[:2]
        self.url = f"http://{host}:{port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        stub = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802
                path = self.path[len(PREFIX) :] if self.path.startswith(PREFIX) else self.path
                stub.requests[path] += 1

                if self.headers.get_all("Metadata-Flavor") != ["AppContainer"]:
                    self._reply(400, "Metadata-Flavor header missing or invalid")
                    return

                route = stub.routes.get(path)
                if route is None:
                    self._reply(404, "")
                else:
                    self._reply(route.status, route.body)

            def _reply(self, status: int, body: str | bytes) -> None:
                payload = body if isinstance(body, bytes) else body.encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            def log_message(self, format: str, *args: object) -> None:  # noqa: A002
                pass

        return Handler

    def serve(self, path: str, body: str | bytes = "", status: int = 200) -> None:
        self.routes[path] = Route(body=body, status=status)

    def remove(self, path: str) -> None:
        self.routes.pop(path, None)

    def count(self, path: str) -> int:
        return self.requests[path]

    @property
    def total(self) -> int:
        return sum(self.requests.values())

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()


def load_default_routes(server: StubMetadataServer) -> None:
    """Serve the reduce-worker pod documents."""
    app = f"apps/{APP_NAME}"
    # Trailing newline exercises whitespace trimming
    server.serve("pod/uuid", POD_UUID + "\n")
    server.serve("pod/manifest", POD_MANIFEST)
    server.serve("pod/annotations", json.dumps(POD_ANNOTATIONS))
    server.serve(f"{app}/annotations", json.dumps(APP_ANNOTATIONS))
    server.serve(f"{app}/image/id", f"  {IMAGE_ID}\n")
    server.serve(f"{app}/image/manifest", IMAGE_MANIFEST)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def metadata_server():
    """A running stub service with the default routes."""
    server = StubMetadataServer()
    load_default_routes(server)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def metadata_env(monkeypatch, metadata_server):
    """Point the environment at the stub service."""
    monkeypatch.setenv("AC_METADATA_URL", metadata_server.url)
    monkeypatch.setenv("AC_APP_NAME", APP_NAME)
    monkeypatch.delenv("AC_METADATA_TIMEOUT", raising=False)
    return metadata_server


@pytest.fixture
def client(metadata_env):
    """A MetadataClient configured from the environment."""
    return MetadataClient()
