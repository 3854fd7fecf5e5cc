"""Textual terminal UI for clubhub."""
