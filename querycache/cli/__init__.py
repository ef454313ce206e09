"""Command-line interface for QueryCache."""
