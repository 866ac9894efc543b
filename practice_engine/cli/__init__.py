"""Command line interface for the practice engine."""
