"""Command line interface for jarstore."""
