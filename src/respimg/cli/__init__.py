"""Command line interface for Respimg."""
