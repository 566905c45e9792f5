"""Command line interface for dsquery."""
