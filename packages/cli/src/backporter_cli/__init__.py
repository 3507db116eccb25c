"""Command-line interface for backporter."""
