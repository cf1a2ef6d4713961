"""
Template rendering against pod and app metadata.

Templates are Jinja2 source with the metadata accessors exposed as
callables:

    pod {{ UUID() }} runs {{ AppName() }} from {{ AppImageID() }}
    listening on {{ PodAnnotationOr("ip-address", "127.0.0.1") }}

PodAnnotation and AppAnnotation fail the render when the name is absent;
use the ...Or forms to supply a default.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any, TextIO

import jinja2

from ac_metadata.core.client import MetadataError, TemplateError
from ac_metadata.sdk import MetadataClient


def template_functions(client: MetadataClient) -> dict[str, Callable[..., Any]]:
    """Map template-callable names to bound client operations."""
    return {
        "UUID": client.uuid,
        "AppName": lambda: client.app_name,
        "PodAnnotations": client.pod_annotations,
        "PodAnnotation": client.must_pod_annotation,
        "PodAnnotationOr": client.pod_annotation_or,
        "PodManifestJSON": client.pod_manifest_json,
        "PodManifest": client.pod_manifest,
        "AppImageID": client.app_image_id,
        "AppImageManifestJSON": client.app_image_manifest_json,
        "AppImageManifest": client.app_image_manifest,
        "AppAnnotations": client.app_annotations,
        "AppAnnotation": client.must_app_annotation,
        "AppAnnotationOr": client.app_annotation_or,
    }


class TemplateRenderer:
    """Renders templates with a MetadataClient as the data context."""

    def __init__(self, client: MetadataClient):
        self.client = client
        self.functions = template_functions(client)
        self._env = jinja2.Environment(
            autoescape=False,
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
        )
        self._env.globals.update(self.functions)

    def render_string(self, source: str, name: str = "<template>") -> str:
        """
        Render template source.

        Raises:
            TemplateError: On syntax errors or undefined names
            MetadataError: Whatever a metadata accessor raised while rendering

        """
        try:
            template = self._env.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(f"{name}:{e.lineno}: {e.message}") from e

        try:
            return template.render()
        except jinja2.UndefinedError as e:
            raise TemplateError(f"{name}: {e.message}") from e
        except jinja2.TemplateError as e:
            raise TemplateError(f"{name}: {e}") from e
        except MetadataError:
            raise
        except Exception as e:
            # Bad calls or arithmetic inside the template itself
            raise TemplateError(f"{name}: {e}") from e

    def render_file(self, path: str | Path) -> str:
        """Render a template file."""
        try:
            source = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateError(f"Cannot read template {path}: {e}") from e
        return self.render_string(source, name=str(path))

    def render_stream(self, stream: TextIO, name: str = "<stdin>") -> str:
        """Render template source read from an open text stream."""
        try:
            source = stream.read()
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateError(f"Cannot read template {name}: {e}") from e
        return self.render_string(source, name=name)
