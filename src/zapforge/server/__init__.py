"""HTTP server exposing the metadata store."""

from zapforge.server.http import MetadataServer, create_app

__all__ = ["MetadataServer", "create_app"]
