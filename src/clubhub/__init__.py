"""clubhub: live chat and event calendar client for the startup club backend."""

__version__ = "1.0.0"
