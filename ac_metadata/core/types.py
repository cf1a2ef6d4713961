"""
Core types for App Container metadata documents.

These dataclasses mirror the appc schema closely enough for lookups and
template access. Decoding is structural only: missing required keys or
wrong container types raise KeyError/TypeError, which the SDK layer turns
into DecodeError.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


def _require_list(data: Any, what: str) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"{what} must be a list, got {type(data).__name__}")
    return data


def _require_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"{what} must be an object, got {type(data).__name__}")
    return data


# =============================================================================
# Annotations and Labels
# =============================================================================


@dataclass(frozen=True)
class Annotation:
    """A name/value metadata pair on a pod or app."""

    name: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Annotation":
        """Create from a {"name": ..., "value": ...} object."""
        data = _require_dict(data, "annotation")
        name, value = data["name"], data["value"]
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError("annotation name and value must be strings")
        return cls(name=name, value=value)

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


class AnnotationSet:
    """
    Ordered, read-only collection of annotations.

    Lookup is an exact, case-sensitive match on the name. Names are expected
    to be unique; if a document repeats one, the first occurrence wins.
    """

    def __init__(self, annotations: list[Annotation] | None = None):
        self._items: tuple[Annotation, ...] = tuple(annotations or ())
        self._index: dict[str, str] = {}
        for annotation in self._items:
            self._index.setdefault(annotation.name, annotation.value)

    @classmethod
    def from_list(cls, data: Any) -> "AnnotationSet":
        """Create from a JSON array of {name, value} objects."""
        return cls([Annotation.from_dict(item) for item in _require_list(data, "annotations")])

    def get(self, name: str) -> tuple[str, bool]:
        """Return (value, True) if present, else ("", False)."""
        if name in self._index:
            return self._index[name], True
        return "", False

    def names(self) -> list[str]:
        return [a.name for a in self._items]

    def to_list(self) -> list[dict[str, str]]:
        return [a.to_dict() for a in self._items]

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnnotationSet):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"AnnotationSet({list(self._items)!r})"


@dataclass(frozen=True)
class Label:
    """A name/value label on an image."""

    name: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Label":
        data = _require_dict(data, "label")
        return cls(name=data["name"], value=data["value"])


def _labels(data: Any) -> list[Label]:
    return [Label.from_dict(item) for item in _require_list(data, "labels")]


def _label_value(labels: list[Label], name: str) -> str | None:
    for label in labels:
        if label.name == name:
            return label.value
    return None


# =============================================================================
# App Types
# =============================================================================


@dataclass
class EventHandler:
    """A command run at an app lifecycle event (pre-start, post-stop)."""

    name: str
    exec: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventHandler":
        data = _require_dict(data, "event handler")
        return cls(name=data["name"], exec=_require_list(data.get("exec"), "exec"))


@dataclass
class Isolator:
    """A resource or security isolator; the value shape depends on the name."""

    name: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Isolator":
        data = _require_dict(data, "isolator")
        return cls(name=data["name"], value=data.get("value"))


@dataclass
class Port:
    """A port an app listens on."""

    name: str
    port: int
    protocol: str = "tcp"
    socket_activated: bool = False
    count: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Port":
        data = _require_dict(data, "port")
        return cls(
            name=data["name"],
            port=data["port"],
            protocol=data.get("protocol", "tcp"),
            socket_activated=data.get("socketActivated", False),
            count=data.get("count", 1),
        )


@dataclass
class MountPoint:
    """A path inside the app where a volume may be mounted."""

    name: str
    path: str
    read_only: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MountPoint":
        data = _require_dict(data, "mount point")
        return cls(name=data["name"], path=data["path"], read_only=data.get("readOnly", False))


@dataclass
class App:
    """Execution parameters of an image's app."""

    exec: list[str] = field(default_factory=list)
    user: str = ""
    group: str = ""
    working_directory: str | None = None
    event_handlers: list[EventHandler] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    isolators: list[Isolator] = field(default_factory=list)
    mount_points: list[MountPoint] = field(default_factory=list)
    ports: list[Port] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "App":
        """Create from the "app" object of a manifest."""
        data = _require_dict(data, "app")
        # environment is a list of {name, value}; later entries override
        environment = {}
        for item in _require_list(data.get("environment"), "environment"):
            item = _require_dict(item, "environment variable")
            environment[item["name"]] = item["value"]

        return cls(
            exec=_require_list(data.get("exec"), "exec"),
            user=data.get("user", ""),
            group=data.get("group", ""),
            working_directory=data.get("workingDirectory"),
            event_handlers=[EventHandler.from_dict(h) for h in _require_list(data.get("eventHandlers"), "eventHandlers")],
            environment=environment,
            isolators=[Isolator.from_dict(i) for i in _require_list(data.get("isolators"), "isolators")],
            mount_points=[MountPoint.from_dict(m) for m in _require_list(data.get("mountPoints"), "mountPoints")],
            ports=[Port.from_dict(p) for p in _require_list(data.get("ports"), "ports")],
        )

    def event_handler(self, name: str) -> EventHandler | None:
        for handler in self.event_handlers:
            if handler.name == name:
                return handler
        return None


# =============================================================================
# Image Manifest
# =============================================================================


@dataclass
class Dependency:
    """An image this image depends on."""

    image_name: str
    image_id: str | None = None
    labels: list[Label] = field(default_factory=list)
    size: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Dependency":
        data = _require_dict(data, "dependency")
        return cls(
            # Older schema versions call this "app"
            image_name=data.get("imageName") or data["app"],
            image_id=data.get("imageID"),
            labels=_labels(data.get("labels")),
            size=data.get("size"),
        )


@dataclass
class ImageManifest:
    """An app container image manifest."""

    name: str
    ac_kind: str = "ImageManifest"
    ac_version: str = ""
    labels: list[Label] = field(default_factory=list)
    app: App | None = None
    dependencies: list[Dependency] = field(default_factory=list)
    path_whitelist: list[str] = field(default_factory=list)
    annotations: AnnotationSet = field(default_factory=AnnotationSet)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageManifest":
        """Create from a decoded manifest document."""
        data = _require_dict(data, "image manifest")
        app_data = data.get("app")
        return cls(
            name=data["name"],
            ac_kind=data.get("acKind", "ImageManifest"),
            ac_version=data.get("acVersion", ""),
            labels=_labels(data.get("labels")),
            app=App.from_dict(app_data) if app_data is not None else None,
            dependencies=[Dependency.from_dict(d) for d in _require_list(data.get("dependencies"), "dependencies")],
            path_whitelist=_require_list(data.get("pathWhitelist"), "pathWhitelist"),
            annotations=AnnotationSet.from_list(data.get("annotations")),
        )

    def label(self, name: str) -> str | None:
        """Get a label value by name."""
        return _label_value(self.labels, name)


# =============================================================================
# Pod Manifest
# =============================================================================


@dataclass
class ImageRef:
    """Reference from a pod app to the image it runs."""

    name: str = ""
    id: str = ""
    labels: list[Label] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageRef":
        data = _require_dict(data, "image")
        return cls(name=data.get("name", ""), id=data["id"], labels=_labels(data.get("labels")))

    def label(self, name: str) -> str | None:
        return _label_value(self.labels, name)


@dataclass
class Mount:
    """Binding of a pod volume to an app mount point."""

    volume: str
    path: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Mount":
        data = _require_dict(data, "mount")
        return cls(volume=data["volume"], path=data["path"])


@dataclass
class RuntimeApp:
    """An app as it runs inside the pod."""

    name: str
    image: ImageRef
    app: App | None = None
    mounts: list[Mount] = field(default_factory=list)
    annotations: AnnotationSet = field(default_factory=AnnotationSet)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeApp":
        data = _require_dict(data, "runtime app")
        app_data = data.get("app")
        return cls(
            name=data["name"],
            image=ImageRef.from_dict(data["image"]),
            app=App.from_dict(app_data) if app_data is not None else None,
            mounts=[Mount.from_dict(m) for m in _require_list(data.get("mounts"), "mounts")],
            annotations=AnnotationSet.from_list(data.get("annotations")),
        )


@dataclass
class Volume:
    """A pod-level volume; remaining kind-specific keys are kept in options."""

    name: str
    kind: str
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Volume":
        data = _require_dict(data, "volume")
        options = {k: v for k, v in data.items() if k not in ("name", "kind")}
        return cls(name=data["name"], kind=data["kind"], options=options)


@dataclass
class ExposedPort:
    """A pod port exposed on the host."""

    name: str
    host_port: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExposedPort":
        data = _require_dict(data, "port")
        return cls(name=data["name"], host_port=data.get("hostPort"))


@dataclass
class PodManifest:
    """The manifest of the running pod."""

    ac_kind: str = "PodManifest"
    ac_version: str = ""
    apps: list[RuntimeApp] = field(default_factory=list)
    volumes: list[Volume] = field(default_factory=list)
    isolators: list[Isolator] = field(default_factory=list)
    annotations: AnnotationSet = field(default_factory=AnnotationSet)
    ports: list[ExposedPort] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PodManifest":
        """Create from a decoded manifest document."""
        data = _require_dict(data, "pod manifest")
        return cls(
            ac_kind=data.get("acKind", "PodManifest"),
            ac_version=data.get("acVersion", ""),
            apps=[RuntimeApp.from_dict(a) for a in _require_list(data.get("apps"), "apps")],
            volumes=[Volume.from_dict(v) for v in _require_list(data.get("volumes"), "volumes")],
            isolators=[Isolator.from_dict(i) for i in _require_list(data.get("isolators"), "isolators")],
            annotations=AnnotationSet.from_list(data.get("annotations")),
            ports=[ExposedPort.from_dict(p) for p in _require_list(data.get("ports"), "ports")],
        )

    def app(self, name: str) -> RuntimeApp | None:
        """Get a runtime app by name."""
        for runtime_app in self.apps:
            if runtime_app.name == name:
                return runtime_app
        return None
