"""Command-line interface for wmsync."""
