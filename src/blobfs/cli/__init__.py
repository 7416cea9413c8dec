"""Command-line interface for blobfs."""
