"""Shared constants for the Textual UI."""

from __future__ import annotations

from pathlib import Path

CLUB_ORANGE = "#F97316"
PROJECT_ROOT = Path(__file__).resolve().parents[3]
EXPORTS_DIR = PROJECT_ROOT / "exports"
