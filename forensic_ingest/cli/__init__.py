"""Command line interface for forensic-ingest."""

from forensic_ingest.cli.main import app, main

__all__ = ["app", "main"]
