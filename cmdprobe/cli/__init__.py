"""Command-line interface for cmdprobe."""
