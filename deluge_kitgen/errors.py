"""Error taxonomy for the kit generator.

WHY: Callers need to tell a skippable per-file problem (an MP3 in a
batch of WAVs) from a run-level one (nothing to generate at all), and
every message must name the offending file so users can fix it.

HOW: One base class carries the offending path and a human-readable
cause; subclasses only exist so callers can catch by kind.

RULES:
- str(error) is "'<path>': <cause>", or just the cause without a path
- Nothing in this pipeline is transient, so no error is retried
"""

from __future__ import annotations

from pathlib import Path


class KitGenError(Exception):
    """Base class for all kit generation errors."""

    def __init__(self, cause: str, path: str | Path | None = None) -> None:
        self.cause = cause
        self.path = Path(path) if path is not None else None
        super().__init__(self._message())

    def _message(self) -> str:
        if self.path is None:
            return self.cause
        return "'{}': {}".format(self.path, self.cause)


class InputNotFound(KitGenError):
    """The input path does not exist or is not a regular file."""


class UnsupportedFormat(KitGenError):
    """The file is not a recognized audio container."""


class CorruptMetadata(KitGenError):
    """Region markers are present but structurally invalid."""


class NothingToGenerate(KitGenError):
    """No input produced any region, so there is no kit to write."""


class WriteError(KitGenError):
    """Writing a kit or copying a sample failed."""


class CardError(KitGenError):
    """The Deluge card layout is missing or a directory lies outside it."""
