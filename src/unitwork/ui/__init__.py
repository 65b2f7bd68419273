"""Command-line interface and changeset file format."""
