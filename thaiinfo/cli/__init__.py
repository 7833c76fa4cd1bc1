"""Command-line interface for portal administration."""
