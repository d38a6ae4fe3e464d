"""Intermediate representation dataclasses for region-to-kit synthesis.

WHY: The extractor reads markers from WAV metadata, the row mapper turns
them into named kit rows, and the serializer writes Deluge XML. Each
stage needs the same well-typed shapes so they can be tested in
isolation and the serializer can stay a pure function of the Kit.

HOW: Small dataclasses form a hierarchy:
  SourceFile: one input audio file and its audio properties
  Region: one named sub-range of a SourceFile, in sample frames
  Row: one playable kit row bound to a Region of a SourceFile
  Kit: the ordered rows plus where the kit and samples live

RULES:
- All offsets are integer sample frames, end exclusive
- Region, SourceFile and Row are frozen; only the synthesizer builds Kits
- A Kit has at least one row
- Row order in a Kit is file order, then region order within a file;
  it decides which pad a row lands on, so it must never be re-sorted
- Row names are unique within their Kit (enforced by core.rows)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


class PlaybackMode(enum.IntEnum):
    """Deluge sample play modes, stored as ``loopMode`` in kit XML."""

    CUT = 0
    ONCE = 1
    LOOP = 2
    STRETCH = 3


@dataclass(frozen=True)
class SourceFile:
    """An input audio file and the properties libsndfile reports for it.

    Attributes:
        path: Path of the source sample as supplied by the caller.
        sample_rate: Frames per second.
        channels: Channel count.
        frames: Total number of sample frames in the file.
    """

    path: Path
    sample_rate: int
    channels: int
    frames: int

    @property
    def stem(self) -> str:
        return self.path.stem


@dataclass(frozen=True)
class Region:
    """A named sub-range of a source file's sample frames.

    RULES:
    - 0 <= start < end
    - name is non-empty once extracted (falls back to the file stem)
    """

    name: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(
                "Invalid region '{}': start={} end={}".format(self.name, self.start, self.end)
            )


@dataclass(frozen=True)
class Row:
    """One playable row of a kit, referencing one region of one file."""

    name: str
    source: SourceFile
    start: int
    end: int
    playback_mode: PlaybackMode = PlaybackMode.ONCE


@dataclass
class Kit:
    """A complete Deluge kit ready for serialization.

    Attributes:
        rows: Ordered rows; index N becomes drum row N on the device.
        output_path: Where the kit XML is written.
        sample_root: Directory that sample references are relative to.
            Defaults to the kit's own directory.
        sample_dir: When set, samples are referenced as
            ``sample_dir / <source file name>`` (the copy on a Deluge
            card) instead of their source path.
    """

    rows: list[Row]
    output_path: Path
    sample_root: Path | None = None
    sample_dir: Path | None = None

    def __post_init__(self) -> None:
        if not self.rows:
            raise ValueError("Kit '{}' has no rows".format(self.output_path))

    def reference_root(self) -> Path:
        return self.sample_root if self.sample_root is not None else self.output_path.parent

    def sample_location_for(self, source: SourceFile) -> Path:
        """Where the device will find the sample of *source*."""
        if self.sample_dir is not None:
            return self.sample_dir / source.path.name
        return source.path

    def sample_location(self, row: Row) -> Path:
        return self.sample_location_for(row.source)

    def sources(self) -> list[SourceFile]:
        """Distinct source files referenced by the rows, in row order."""
        seen: dict[Path, SourceFile] = {}
        for row in self.rows:
            seen.setdefault(row.source.path, row.source)
        return list(seen.values())


@dataclass
class SynthesisResult:
    """Aggregate outcome of one synthesize() run.

    written: kit paths in the order they were written.
    failures: per-file errors (KitGenError instances) in input order.
    """

    written: list[Path] = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
