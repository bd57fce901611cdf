"""Command-line interface for stepup."""
