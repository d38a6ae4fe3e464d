"""Region → kit row mapping with per-kit unique naming.

WHY: Every row of a Deluge kit needs a distinct name, but regions from
one file (or, in combine-all mode, from different files) often share a
name such as "hit". Naming must be deterministic so regenerating a kit
gives the same rows, and it must not depend on hidden global state.

HOW: The set of names already used in a kit (the registry) is a plain
frozenset passed into map_region() and returned, extended by the chosen
name, alongside the new Row. The caller threads it through the regions
of one kit in order. map_regions() does that fold for a whole sequence.

RULES:
- Base name is the sanitized region name, or the sanitized file stem
  when that is empty, so every row name is valid in a kit file
- A taken base gets a numeric suffix starting at 2: "tip", "tip2", "tip3"
- The base is shortened so base + suffix fits MAX_ROW_NAME_LENGTH
- No I/O happens here
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from deluge_kitgen.config import DEFAULT_PLAYBACK_MODE, MAX_ROW_NAME_LENGTH
from deluge_kitgen.core.ir import PlaybackMode, Region, Row, SourceFile
from deluge_kitgen.core.regions import sanitize_name


def unique_name(base: str, taken: frozenset[str]) -> str:
    """Return *base*, or *base* with the lowest free suffix from 2 up."""
    base = base[:MAX_ROW_NAME_LENGTH]
    if base not in taken:
        return base

    counter = 2
    while True:
        suffix = str(counter)
        candidate = base[:MAX_ROW_NAME_LENGTH - len(suffix)] + suffix
        if candidate not in taken:
            return candidate
        counter += 1


def map_region(
    region: Region,
    source: SourceFile,
    taken: frozenset[str],
    playback_mode: PlaybackMode = DEFAULT_PLAYBACK_MODE,
) -> Tuple[Row, frozenset[str]]:
    """Build the Row for *region* and the registry that includes its name.

    Args:
        region: The region to map (already validated by Region itself).
        source: The file the region belongs to.
        taken: Names already used in the target kit.
        playback_mode: Deluge play mode for the row.

    Returns:
        (row, taken | {row.name})
    """
    base = sanitize_name(region.name) or sanitize_name(source.stem) or "ROW"
    name = unique_name(base, taken)
    row = Row(
        name=name,
        source=source,
        start=region.start,
        end=region.end,
        playback_mode=playback_mode,
    )
    return row, taken | {name}


def map_regions(
    pairs: Iterable[Tuple[SourceFile, Region]],
    taken: frozenset[str] = frozenset(),
    playback_mode: PlaybackMode = DEFAULT_PLAYBACK_MODE,
) -> Tuple[List[Row], frozenset[str]]:
    """Map (source, region) pairs in order, threading the registry."""
    rows: List[Row] = []
    for source, region in pairs:
        row, taken = map_region(region, source, taken, playback_mode)
        rows.append(row)
    return rows, taken
