"""Configuration constants, Deluge format defaults, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Firmware version strings, naming limits, and
pipeline defaults are plain data, not buried in logic, so the
serializer and the synthesizer agree on a single source of truth.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values with environment overrides read via os.getenv.
parse_playback_mode() converts a user-facing mode name into the
PlaybackMode enum with a clear error for unknown names.

RULES:
- Every DELUGE_* environment variable has a working default
- KIT_EXTENSION and MAX_ROW_NAME_LENGTH are fixed by the Deluge firmware
- SUPPORTED_FORMATS lists input file extensions (lowercase, with dot)
- Values are read once, at import time
- An invalid DELUGE_PLAYBACK_MODE logs a warning and falls back to "once"
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from deluge_kitgen.core.ir import PlaybackMode

logger = logging.getLogger(__name__)

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Deluge kit format
# ---------------------------------------------------------------------------

FIRMWARE_VERSION = os.getenv("DELUGE_FIRMWARE_VERSION", "3.1.5")
EARLIEST_COMPATIBLE_FIRMWARE = os.getenv("DELUGE_EARLIEST_COMPATIBLE_FIRMWARE", "3.1.0-beta")

KIT_EXTENSION = ".XML"
"""The Deluge stores presets as upper-case .XML files."""

MAX_ROW_NAME_LENGTH = 24
"""Longest row name written to a kit; longer names are truncated."""

KITS_FOLDER = "KITS"
SAMPLES_FOLDER = "SAMPLES"
KIT_FILE_PREFIX = "KIT"

# ---------------------------------------------------------------------------
# Input files
# ---------------------------------------------------------------------------

SUPPORTED_FORMATS: set[str] = {".wav"}
"""Input extensions that can carry cue/region markers (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# Pipeline defaults
# ---------------------------------------------------------------------------

COMBINED_KIT_NAME = os.getenv("DELUGE_COMBINED_KIT_NAME", "COMBINED")
DEFAULT_SAMPLE_DIRECTORY = os.getenv("DELUGE_SAMPLE_DIRECTORY", KITS_FOLDER)
EXTRACT_WORKERS = int(os.getenv("DELUGE_EXTRACT_WORKERS", "1"))
LOG_LEVEL = os.getenv("DELUGE_LOG_LEVEL", "WARNING").upper()


def parse_playback_mode(name: str) -> PlaybackMode:
    """Map a playback mode name ("cut", "once", ...) to PlaybackMode.

    RULES:
    - Matching is case-insensitive
    - Raises ValueError listing the valid names for anything else
    """
    try:
        return PlaybackMode[name.strip().upper()]
    except KeyError:
        valid = ", ".join(m.name.lower() for m in PlaybackMode)
        raise ValueError(
            "Unknown playback mode '{}'. Valid modes: {}".format(name, valid)
        ) from None


def playback_mode_from_env(name: str) -> PlaybackMode:
    """Parse DELUGE_PLAYBACK_MODE, falling back to ONCE on a bad value.

    RULES:
    - Never raises; an unknown name logs a warning
    """
    try:
        return parse_playback_mode(name)
    except ValueError as e:
        logger.warning("%s. Using 'once'.", e)
        return PlaybackMode.ONCE


DEFAULT_PLAYBACK_MODE = playback_mode_from_env(os.getenv("DELUGE_PLAYBACK_MODE", "once"))
DEFAULT_PLAYBACK_MODE_NAME = DEFAULT_PLAYBACK_MODE.name.lower()
