"""HTTP interface for triggering runs, submitting videos and browsing summaries."""

from tubesum.api.app import create_app

__all__ = ["create_app"]
