"""Utility modules for myspace."""
