"""Command line interface for powerloop."""
