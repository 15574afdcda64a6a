"""Development container lifecycle for a single project folder."""

__version__ = "0.1.0"
