"""User configuration for Geni sync."""
