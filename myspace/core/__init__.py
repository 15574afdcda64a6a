"""Core functionality for devcontainer management."""
