"""
Core layer - Raw types and HTTP client.

This layer provides:
- Typed dataclasses for appc metadata documents
- Low-level HTTP client with the metadata header and error handling
- The compute-once cell used for memoization
"""

from ac_metadata.core.cell import OnceCell
from ac_metadata.core.client import (
    AnnotationNotFound,
    APIClient,
    ClientConfig,
    ConfigError,
    DecodeError,
    MetadataError,
    ProtocolError,
    TemplateError,
    TransportError,
)
from ac_metadata.core.types import (
    Annotation,
    AnnotationSet,
    App,
    Dependency,
    EventHandler,
    ExposedPort,
    ImageManifest,
    ImageRef,
    Isolator,
    Label,
    Mount,
    MountPoint,
    PodManifest,
    Port,
    RuntimeApp,
    Volume,
)

__all__ = [
    "APIClient",
    "Annotation",
    "AnnotationNotFound",
    "AnnotationSet",
    "App",
    "ClientConfig",
    "ConfigError",
    "DecodeError",
    "Dependency",
    "EventHandler",
    "ExposedPort",
    "ImageManifest",
    "ImageRef",
    "Isolator",
    "Label",
    "MetadataError",
    "Mount",
    "MountPoint",
    "OnceCell",
    "PodManifest",
    "Port",
    "ProtocolError",
    "RuntimeApp",
    "TemplateError",
    "TransportError",
    "Volume",
]
