"""
ac-metadata - Three-layer client for the App Container metadata service.

Layers:
- core: Raw types, configuration and HTTP client
- sdk: High-level MetadataClient with memoized accessors
- cli: Command-line interface and template rendering
"""

from ac_metadata.sdk import MetadataClient

__version__ = "0.1.0"
__all__ = ["MetadataClient"]
