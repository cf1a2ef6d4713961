"""
Core HTTP client for the App Container metadata service.

Handles configuration, the metadata request/response exchange, and the
error taxonomy shared by every layer above it.
"""

import logging
import math
import os
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_TIMEOUT = 60.0
API_PREFIX = "/acMetadata/v1/"
FLAVOR_HEADER = "Metadata-Flavor"
FLAVOR_VALUE = "AppContainer"

ENV_METADATA_URL = "AC_METADATA_URL"
ENV_APP_NAME = "AC_APP_NAME"
ENV_TIMEOUT = "AC_METADATA_TIMEOUT"


class MetadataError(Exception):
    """Base error class for metadata client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def diagnostic(self) -> str:
        """Text printed on stderr by the CLI."""
        return f"ERROR: {self.message}"


class ConfigError(MetadataError):
    """Required configuration is missing or invalid."""


class TransportError(MetadataError):
    """The metadata endpoint could not be reached."""


class ProtocolError(MetadataError):
    """The metadata endpoint answered with an unexpected HTTP status."""

    def __init__(self, path: str, status: int, body: str = ""):
        super().__init__(f"GET {path}: HTTP {status}", {"path": path, "status": status})
        self.path = path
        self.status = status
        self.body = body

    def diagnostic(self) -> str:
        lines = [f"ERROR: GET {self.path}", f"HTTP {self.status}"]
        if self.body:
            lines.append(self.body)
        return "\n".join(lines)


class DecodeError(MetadataError):
    """A response body could not be decoded into the expected structure."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid response for {path}: {reason}", {"path": path})
        self.path = path
        self.reason = reason


class AnnotationNotFound(MetadataError):
    """A required annotation is absent from its scope."""

    def __init__(self, scope: str, name: str):
        super().__init__(f"{scope} annotation {name} not found", {"scope": scope, "name": name})
        self.scope = scope
        self.name = name


class TemplateError(MetadataError):
    """A template could not be read, parsed or rendered."""


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the metadata service."""

    metadata_url: str
    app_name: str
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.metadata_url:
            raise ConfigError(f"No {ENV_METADATA_URL} environment variable")
        if not self.app_name:
            raise ConfigError(f"No {ENV_APP_NAME} environment variable")
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ConfigError(f"{ENV_TIMEOUT} must be a positive number, got {self.timeout}")
        object.__setattr__(self, "metadata_url", self.metadata_url.rstrip("/"))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ClientConfig":
        """
        Read configuration from the process environment.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            ConfigError: If AC_METADATA_URL or AC_APP_NAME is empty, or the
                timeout is not a positive number

        """
        env = os.environ if environ is None else environ
        raw_timeout = env.get(ENV_TIMEOUT)
        timeout = DEFAULT_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {raw_timeout!r}")
        return cls(
            metadata_url=env.get(ENV_METADATA_URL, ""),
            app_name=env.get(ENV_APP_NAME, ""),
            timeout=timeout,
        )


class APIClient:
    """
    Low-level HTTP client for the metadata service.

    Handles:
    - The Metadata-Flavor header on every request
    - Per-request timeout
    - Mapping transport and status failures onto MetadataError subclasses

    Nothing is cached here; every call performs exactly one request.
    """

    def __init__(self, config: ClientConfig):
        self.config = config

    @property
    def app_name(self) -> str:
        """Name of the app whose metadata is requested."""
        return self.config.app_name

    def build_url(self, path: str) -> str:
        """Build full URL from a path relative to the API prefix."""
        return f"{self.config.metadata_url}{API_PREFIX}{path.lstrip('/')}"

    def get(self, path: str, allow_missing: bool = False) -> bytes | None:
        """
        GET a metadata path.

        Args:
            path: Path relative to /acMetadata/v1/ (e.g. pod/uuid)
            allow_missing: Return None on 404 instead of raising

        Returns:
            Response body bytes verbatim, or None for an allowed 404

        Raises:
            TransportError: On connection failure or timeout
            ProtocolError: On any other non-200 status

        """
        url = self.build_url(path)
        req = urllib.request.Request(url, headers={FLAVOR_HEADER: FLAVOR_VALUE}, method="GET")
        logger.debug("GET %s", url)

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                status = response.status
                body = response.read()

        except urllib.error.HTTPError as e:
            logger.debug("GET %s -> %s", path, e.code)
            if e.code == 404 and allow_missing:
                return None
            raise ProtocolError(path, e.code, _read_error_body(e))

        except urllib.error.URLError as e:
            raise TransportError(f"Connection error: {e.reason}", {"url": url})

        except TimeoutError:
            raise TransportError(f"Request timed out after {self.config.timeout} seconds", {"url": url})

        except OSError as e:
            raise TransportError(f"Connection error: {e}", {"url": url})

        logger.debug("GET %s -> %s (%d bytes)", path, status, len(body))
        if status != 200:
            raise ProtocolError(path, status, body.decode("utf-8", errors="replace"))
        return body


def _read_error_body(error: urllib.error.HTTPError) -> str:
    try:
        return error.read().decode("utf-8", errors="replace")
    except OSError:
        return ""


def error_details(error: MetadataError) -> dict[str, Any]:
    """Flatten an error into a dict for debug logging."""
    result: dict[str, Any] = {"error": error.message, "type": type(error).__name__}
    if error.details:
        result["details"] = error.details
    return result
