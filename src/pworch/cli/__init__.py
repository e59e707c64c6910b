"""Command line interface for pworch."""
