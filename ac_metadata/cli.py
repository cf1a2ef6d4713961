"""
ac-metadata - command-line interface to the App Container metadata service.

This layer maps subcommands onto MetadataClient accessors and prints one
result per invocation. It handles:
- Argument parsing with the tool's own usage text and exit codes
- Turning MetadataError into a diagnostic on stderr and exit status 1
- Template rendering from a file, stdin or a literal string
"""

import argparse
import logging
import sys
from typing import NoReturn

from ac_metadata.core.client import MetadataError, error_details
from ac_metadata.render import TemplateRenderer
from ac_metadata.sdk import MetadataClient

logger = logging.getLogger(__name__)

USAGE = """Usage:
    {prog} uuid
    {prog} annotation NAME [DEFAULT]
    {prog} manifest
    {prog} image-id
    {prog} image-manifest
    {prog} app-annotation NAME [DEFAULT]
    {prog} render PATH|-
    {prog} expand TEMPLATE-STRING

Options:
    -v, --verbose   Log metadata requests to stderr

Environment:
    AC_METADATA_URL       Metadata service base URL (required)
    AC_APP_NAME           Name of this app in the pod (required)
    AC_METADATA_TIMEOUT   Request timeout in seconds (default 60)"""

HELP_WORDS = ("help", "--help", "-help", "-h")
VERBOSE_FLAGS = ("-v", "--verbose")
PROG = "ac-metadata"

# =============================================================================
# Output Helpers
# =============================================================================


def usage(rv: int) -> NoReturn:
    """Print usage to stderr and exit."""
    print(USAGE.format(prog=PROG), file=sys.stderr)
    sys.exit(rv)


def error_output(error: MetadataError) -> NoReturn:
    """Print error diagnostic and exit."""
    logger.debug("%s", error_details(error))
    print(error.diagnostic(), file=sys.stderr)
    sys.exit(1)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad invocations with the tool's usage."""

    def error(self, message: str) -> NoReturn:
        print(f"{PROG}: {message}", file=sys.stderr)
        usage(1)


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_uuid(client: MetadataClient, _args: argparse.Namespace) -> None:
    """Print the pod UUID."""
    print(client.uuid())


def _print_annotation(value: str, found: bool, args: argparse.Namespace) -> None:
    if found:
        print(value)
    elif args.default is not None:
        print(args.default)
    else:
        print(f"ERROR: annotation {args.name} not found", file=sys.stderr)
        sys.exit(1)


def cmd_annotation(client: MetadataClient, args: argparse.Namespace) -> None:
    """Print a pod annotation."""
    value, found = client.pod_annotation(args.name)
    _print_annotation(value, found, args)


def cmd_manifest(client: MetadataClient, _args: argparse.Namespace) -> None:
    """Print the pod manifest JSON as served."""
    print(client.pod_manifest_json())


def cmd_image_id(client: MetadataClient, _args: argparse.Namespace) -> None:
    """Print the app's image ID."""
    print(client.app_image_id())


def cmd_image_manifest(client: MetadataClient, _args: argparse.Namespace) -> None:
    """Print the app's image manifest JSON as served."""
    print(client.app_image_manifest_json())


def cmd_app_annotation(client: MetadataClient, args: argparse.Namespace) -> None:
    """Print an app annotation."""
    value, found = client.app_annotation(args.name)
    _print_annotation(value, found, args)


def cmd_render(client: MetadataClient, args: argparse.Namespace) -> None:
    """Render a template file, or stdin for -."""
    renderer = TemplateRenderer(client)
    if args.path == "-":
        output = renderer.render_stream(sys.stdin)
    else:
        output = renderer.render_file(args.path)
    sys.stdout.write(output)


def cmd_expand(client: MetadataClient, args: argparse.Namespace) -> None:
    """Render a template given on the command line."""
    sys.stdout.write(TemplateRenderer(client).render_string(args.template, name="<expand>"))


# =============================================================================
# Main CLI
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = UsageParser(prog=PROG, add_help=False)
    parser.add_argument(*VERBOSE_FLAGS, dest="verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", parser_class=UsageParser)

    sub = subparsers.add_parser("uuid", add_help=False)
    sub.set_defaults(func=cmd_uuid)

    sub = subparsers.add_parser("annotation", add_help=False)
    sub.add_argument("name")
    sub.add_argument("default", nargs="?")
    sub.set_defaults(func=cmd_annotation)

    sub = subparsers.add_parser("manifest", add_help=False)
    sub.set_defaults(func=cmd_manifest)

    sub = subparsers.add_parser("image-id", add_help=False)
    sub.set_defaults(func=cmd_image_id)

    sub = subparsers.add_parser("image-manifest", add_help=False)
    sub.set_defaults(func=cmd_image_manifest)

    sub = subparsers.add_parser("app-annotation", add_help=False)
    sub.add_argument("name")
    sub.add_argument("default", nargs="?")
    sub.set_defaults(func=cmd_app_annotation)

    sub = subparsers.add_parser("render", add_help=False)
    sub.add_argument("path")
    sub.set_defaults(func=cmd_render)

    sub = subparsers.add_parser("expand", add_help=False)
    sub.add_argument("template")
    sub.set_defaults(func=cmd_expand)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    argv = sys.argv[1:] if argv is None else list(argv)

    # Help is answered before configuration is read
    words = [a for a in argv if a not in VERBOSE_FLAGS]
    if not words or words[0] in HELP_WORDS:
        usage(0)

    args = create_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        client = MetadataClient()
        args.func(client, args)
    except MetadataError as e:
        error_output(e)


if __name__ == "__main__":
    main()
