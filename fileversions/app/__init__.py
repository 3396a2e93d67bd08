"""Command-line interface for fileversions."""
