"""Command-line commands for Geni."""
