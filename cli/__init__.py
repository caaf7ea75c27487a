"""CLI package for running and querying the garden haiku service."""
