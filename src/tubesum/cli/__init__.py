"""Command-line interface package for tubesum."""

from tubesum.cli.main import CLIApplication, create_app

__all__ = ["CLIApplication", "create_app"]
