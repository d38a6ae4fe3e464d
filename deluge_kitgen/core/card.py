"""Deluge SD card layout: kit numbering and sample placement.

WHY: When a kit is meant to be loaded straight from a Deluge card, the
firmware expects kits in ``KITS/`` named ``KIT000.XML``, ``KIT001.XML``
and so on, and samples referenced by their path from the card root.
Source samples usually live elsewhere, so they are copied onto the card
next to the other kit samples.

HOW: Card wraps the card root directory. next_kit_path() scans KITS/
for the highest standard kit number. resolve_sample_dir() maps a user
supplied sample directory into the card. copy_sample() copies one file,
keeping an existing copy unless replacement was requested.

RULES:
- Standard kit names are KIT + three digits (+ optional letter suffix)
- Numbering continues after the highest existing number, starting at 000
- A relative sample directory is resolved under SAMPLES/
- An absolute sample directory must be inside the card root
- Existing samples are only overwritten when replace=True
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from deluge_kitgen.config import (
    KIT_EXTENSION,
    KIT_FILE_PREFIX,
    KITS_FOLDER,
    SAMPLES_FOLDER,
)
from deluge_kitgen.errors import CardError, WriteError

logger = logging.getLogger(__name__)

_STANDARD_KIT_RE = re.compile(
    r"^{}(\d{{3}})[A-Z]?{}$".format(KIT_FILE_PREFIX, re.escape(KIT_EXTENSION)),
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Card:
    """The root directory of a Deluge SD card (or a copy of one)."""

    root: Path

    @classmethod
    def open(cls, root: str | Path) -> "Card":
        """Open a card root directory.

        Raises:
            CardError: If the directory does not exist.
        """
        root = Path(root)
        if not root.is_dir():
            raise CardError("card root directory does not exist", root)
        return cls(root=root)

    @property
    def kits_dir(self) -> Path:
        return self.root / KITS_FOLDER

    @property
    def samples_dir(self) -> Path:
        return self.root / SAMPLES_FOLDER

    def resolve_sample_dir(self, directory: str | Path) -> Path:
        """Resolve where samples are copied on the card.

        Raises:
            CardError: If an absolute directory lies outside the card.
        """
        directory = Path(directory)
        if not directory.is_absolute():
            return self.samples_dir / directory

        try:
            directory.resolve().relative_to(self.root.resolve())
        except ValueError:
            raise CardError(
                "sample directory is outside the card '{}'".format(self.root), directory
            ) from None
        return directory

    def next_kit_path(self) -> Path:
        """Return the next free standard kit path, e.g. KITS/KIT004.XML."""
        highest = -1
        if self.kits_dir.is_dir():
            for entry in self.kits_dir.iterdir():
                match = _STANDARD_KIT_RE.match(entry.name)
                if match:
                    highest = max(highest, int(match.group(1)))
        number = highest + 1
        return self.kits_dir / "{}{:03d}{}".format(KIT_FILE_PREFIX, number, KIT_EXTENSION)


def copy_sample(source: Path, destination: Path, replace: bool = False) -> bool:
    """Copy a sample onto the card.

    Returns:
        True if the file was copied, False if an existing copy was kept.

    Raises:
        WriteError: If the directory cannot be created or the copy fails.
    """
    if destination.exists() and not replace:
        logger.info("Sample '%s' already exists, keeping it", destination)
        return False

    if destination.exists():
        logger.info("Replacing existing sample '%s'", destination)
    else:
        logger.info("Copying sample to '%s'", destination)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
    except OSError as e:
        raise WriteError("cannot copy sample ({})".format(e), destination) from e
    return True
