"""
Metadata SDK - High-level memoizing client.

This layer provides typed accessors for pod and app metadata, built on top
of the core APIClient. Every accessor result is cached for the lifetime of
the client instance, so each field costs at most one request.
"""

import json
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from ac_metadata.core.cell import OnceCell
from ac_metadata.core.client import AnnotationNotFound, APIClient, ClientConfig, DecodeError
from ac_metadata.core.types import AnnotationSet, ImageManifest, PodManifest

M = TypeVar("M")


def _decode_json(path: str, raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(path, str(e)) from e


def _decode_text(path: str, raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(path, str(e)) from e


def _decode_structure(path: str, data: Any, parser: Callable[[Any], M]) -> M:
    try:
        return parser(data)
    except (KeyError, TypeError, ValueError) as e:
        reason = f"missing key {e}" if isinstance(e, KeyError) else str(e)
        raise DecodeError(path, reason) from e


class MetadataClient:
    """
    High-level metadata client with memoized, typed accessors.

    Example:
        client = MetadataClient.from_env()

        client.uuid()
        value, found = client.app_annotation("foo")
        manifest = client.pod_manifest()
        for app in manifest.apps:
            print(app.name, app.image.id)

    """

    def __init__(self, config: ClientConfig | None = None):
        """
        Initialize the metadata client.

        Args:
            config: Connection settings (read from AC_METADATA_URL and
                AC_APP_NAME when omitted)

        Raises:
            ConfigError: If the environment lacks a required variable

        """
        self.config = config or ClientConfig.from_env()
        self._client = APIClient(self.config)

        # Sub-clients for the two metadata scopes
        self.pod = PodOperations(self._client)
        self.app = AppOperations(self._client)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MetadataClient":
        """Build a client from AC_METADATA_URL and AC_APP_NAME."""
        return cls(ClientConfig.from_env(environ))

    @property
    def app_name(self) -> str:
        """Name of the app this client is scoped to."""
        return self.config.app_name

    # =========================================================================
    # Pod scope
    # =========================================================================

    def uuid(self) -> str:
        """Get the pod UUID."""
        return self.pod.uuid()

    def pod_annotations(self) -> AnnotationSet:
        """Get all pod annotations."""
        return self.pod.annotations()

    def pod_annotation(self, name: str) -> tuple[str, bool]:
        """Look up a pod annotation, returning (value, found)."""
        return self.pod.annotation(name)

    def pod_annotation_value(self, name: str) -> str:
        """Get a pod annotation, or an empty string when absent."""
        return self.pod.annotation_value(name)

    def must_pod_annotation(self, name: str) -> str:
        """Get a pod annotation that has to be present."""
        return self.pod.must_annotation(name)

    def pod_annotation_or(self, name: str, default: str) -> str:
        """Get a pod annotation, or default when absent."""
        return self.pod.annotation_or(name, default)

    def pod_manifest_raw(self) -> bytes:
        """Get the pod manifest bytes as served."""
        return self.pod.manifest_raw()

    def pod_manifest_json(self) -> str:
        """Get the pod manifest JSON text as served."""
        return self.pod.manifest_json()

    def pod_manifest(self) -> PodManifest:
        """Get the decoded pod manifest."""
        return self.pod.manifest()

    # =========================================================================
    # App scope
    # =========================================================================

    def app_image_id(self) -> str:
        """Get the image ID of this app."""
        return self.app.image_id()

    def app_annotations(self) -> AnnotationSet:
        """Get all annotations of this app."""
        return self.app.annotations()

    def app_annotation(self, name: str) -> tuple[str, bool]:
        """Look up an app annotation, returning (value, found)."""
        return self.app.annotation(name)

    def app_annotation_value(self, name: str) -> str:
        """Get an app annotation, or an empty string when absent."""
        return self.app.annotation_value(name)

    def must_app_annotation(self, name: str) -> str:
        """Get an app annotation that has to be present."""
        return self.app.must_annotation(name)

    def app_annotation_or(self, name: str, default: str) -> str:
        """Get an app annotation, or default when absent."""
        return self.app.annotation_or(name, default)

    def app_image_manifest_raw(self) -> bytes:
        """Get the image manifest bytes as served."""
        return self.app.manifest_raw()

    def app_image_manifest_json(self) -> str:
        """Get the image manifest JSON text as served."""
        return self.app.manifest_json()

    def app_image_manifest(self) -> ImageManifest:
        """Get the decoded image manifest."""
        return self.app.manifest()


# =============================================================================
# Scoped Operations
# =============================================================================


class ScopeOperations(Generic[M]):
    """
    Annotation and manifest accessors shared by the pod and app scopes.

    Args:
        client: Low-level API client
        scope: Scope name used in error messages ("pod" or "app")
        prefix: Path prefix for the scope (e.g. "pod/")
        manifest_path: Path of the scope's manifest document
        parser: Builds the structured manifest from decoded JSON

    """

    def __init__(
        self,
        client: APIClient,
        scope: str,
        prefix: str,
        manifest_path: str,
        parser: Callable[[Any], M],
    ):
        self._client = client
        self.scope = scope
        self._annotations_path = f"{prefix}annotations"
        self._manifest_path = manifest_path
        self._parser = parser

        self._annotations = OnceCell(self._load_annotations)
        self._manifest_raw = OnceCell(lambda: self._client.get(self._manifest_path))
        self._manifest = OnceCell(self._load_manifest)

    def _fetch_text(self, path: str) -> str:
        return _decode_text(path, self._client.get(path)).strip()

    def _load_annotations(self) -> AnnotationSet:
        # A scope with no annotations may answer 404
        raw = self._client.get(self._annotations_path, allow_missing=True)
        if raw is None:
            return AnnotationSet()
        data = _decode_json(self._annotations_path, raw)
        return _decode_structure(self._annotations_path, data, AnnotationSet.from_list)

    def _load_manifest(self) -> M:
        data = _decode_json(self._manifest_path, self.manifest_raw())
        return _decode_structure(self._manifest_path, data, self._parser)

    # -------------------------------------------------------------------------
    # Annotations
    # -------------------------------------------------------------------------

    def annotations(self) -> AnnotationSet:
        """All annotations of this scope, fetched once."""
        return self._annotations.get()

    def annotation(self, name: str) -> tuple[str, bool]:
        """Look up an annotation, returning (value, found)."""
        return self.annotations().get(name)

    def annotation_value(self, name: str) -> str:
        """Annotation value, or an empty string when absent."""
        value, _ = self.annotation(name)
        return value

    def must_annotation(self, name: str) -> str:
        """
        Annotation value for a name that has to be present.

        Raises:
            AnnotationNotFound: If the scope has no such annotation

        """
        value, found = self.annotation(name)
        if not found:
            raise AnnotationNotFound(self.scope, name)
        return value

    def annotation_or(self, name: str, default: str) -> str:
        """Annotation value, or default when absent."""
        value, found = self.annotation(name)
        return value if found else default

    # -------------------------------------------------------------------------
    # Manifest
    # -------------------------------------------------------------------------

    def manifest_raw(self) -> bytes:
        """Manifest bytes exactly as served."""
        return self._manifest_raw.get()

    def manifest_json(self) -> str:
        """Manifest JSON text exactly as served."""
        return _decode_text(self._manifest_path, self.manifest_raw())

    def manifest(self) -> M:
        """Structured manifest, decoded on first call from the cached bytes."""
        return self._manifest.get()


class PodOperations(ScopeOperations[PodManifest]):
    """Operations on the pod scope."""

    def __init__(self, client: APIClient):
        super().__init__(client, "pod", "pod/", "pod/manifest", PodManifest.from_dict)
        self._uuid = OnceCell(lambda: self._fetch_text("pod/uuid"))

    def uuid(self) -> str:
        """Pod UUID with surrounding whitespace removed."""
        return self._uuid.get()


class AppOperations(ScopeOperations[ImageManifest]):
    """Operations on the current app's scope."""

    def __init__(self, client: APIClient):
        prefix = f"apps/{client.app_name}/"
        super().__init__(client, "app", prefix, f"{prefix}image/manifest", ImageManifest.from_dict)
        self.name = client.app_name
        self._image_id = OnceCell(lambda: self._fetch_text(f"{prefix}image/id"))

    def image_id(self) -> str:
        """ID of the app's image with surrounding whitespace removed."""
        return self._image_id.get()
