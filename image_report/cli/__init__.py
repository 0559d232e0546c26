"""Command line entry point for image-report."""
