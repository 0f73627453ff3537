"""Command line interface for webapp deployments."""
