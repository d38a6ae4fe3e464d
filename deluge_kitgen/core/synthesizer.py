"""Kit synthesis: regions of one or many files → written Deluge kits.

WHY: This is the engine the CLI drives. It decides how many kits a run
produces, which rows go into each, where each kit is written, and how
per-file problems affect the rest of the run.

HOW: synthesize() extracts every input (optionally on a thread pool),
then walks the results serially in input order:
  default mode: one fresh name registry and one Kit per file
  combine-all mode: one registry and one Kit spanning all files
Each Kit is rendered by a formatter and written by write_kit(). In card
mode the kit goes to the card's next KITnnn.XML and the contributing
samples are copied onto the card after the kit was written.

RULES:
- Row naming and row order follow input order, even with parallel
  extraction (ThreadPoolExecutor.map preserves order)
- Files with zero regions contribute nothing and produce no kit
- A run never writes the same kit path twice: a repeated stem gets a
  counter ("kick.XML", "kick2.XML")
- Default mode records per-file errors in the result and keeps going
- Combine-all mode raises the first file's error and writes nothing
- NothingToGenerate when no region was found and nothing failed
- Kit files are written with "\\n" line endings on every platform
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from deluge_kitgen.config import (
    COMBINED_KIT_NAME,
    DEFAULT_PLAYBACK_MODE,
    DEFAULT_SAMPLE_DIRECTORY,
    EXTRACT_WORKERS,
    KIT_EXTENSION,
)
from deluge_kitgen.core.card import Card, copy_sample
from deluge_kitgen.core.ir import Kit, PlaybackMode, Region, Row, SourceFile, SynthesisResult
from deluge_kitgen.core.regions import extract_regions
from deluge_kitgen.core.rows import map_regions
from deluge_kitgen.errors import KitGenError, NothingToGenerate, WriteError
from deluge_kitgen.formatters.base import BaseFormatter
from deluge_kitgen.formatters.deluge_kit import DelugeKitFormatter

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class OutputTarget:
    """Where and how kits are written.

    Attributes:
        directory: Output directory. None writes each kit next to its
            source file (combine-all: next to the first file).
        kit_name: Name of the combined kit in combine-all mode.
        card: Deluge card to write into instead of ``directory``.
        sample_dir: Card sample directory; relative to SAMPLES/.
        replace_samples: Overwrite samples that already exist on the card.
        playback_mode: Play mode given to every row.
    """

    directory: Optional[Path] = None
    kit_name: str = COMBINED_KIT_NAME
    card: Optional[Card] = None
    sample_dir: Path = field(default_factory=lambda: Path(DEFAULT_SAMPLE_DIRECTORY))
    replace_samples: bool = False
    playback_mode: PlaybackMode = DEFAULT_PLAYBACK_MODE


@dataclass
class Extraction:
    """Outcome of extracting one input file."""

    path: Path
    source: Optional[SourceFile] = None
    regions: List[Region] = field(default_factory=list)
    error: Optional[KitGenError] = None


def _extract(path: PathLike) -> Extraction:
    try:
        source, regions = extract_regions(path)
    except KitGenError as e:
        return Extraction(path=Path(path), error=e)
    return Extraction(path=Path(path), source=source, regions=regions)


def extract_all(files: Sequence[PathLike], workers: int = EXTRACT_WORKERS) -> List[Extraction]:
    """Extract every file, returning results in input order."""
    if workers <= 1 or len(files) <= 1:
        return [_extract(f) for f in files]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_extract, files))


def _kit_file_name(name: str) -> str:
    if name.upper().endswith(KIT_EXTENSION.upper()):
        return name
    return name + KIT_EXTENSION


def _unique_kit_path(path: Path, written: List[Path]) -> Path:
    """Return *path*, or *path* with a counter from 2 up if this run already wrote it.

    Inputs with the same stem from different directories would otherwise
    write the same kit file when they share an output directory.
    """
    if path not in written:
        return path

    counter = 2
    while True:
        candidate = path.with_name("{}{}{}".format(path.stem, counter, path.suffix))
        if candidate not in written:
            logger.warning("Kit '%s' was already written in this run, using '%s'", path, candidate)
            return candidate
        counter += 1


def write_kit(kit: Kit, formatter: Optional[BaseFormatter] = None) -> Path:
    """Render *kit* and write it to ``kit.output_path``.

    Raises:
        WriteError: On any filesystem failure.
    """
    formatter = formatter or DelugeKitFormatter()
    output = formatter.format(kit)[0]

    logger.info(
        "Writing kit '%s' with %d row%s",
        kit.output_path,
        len(kit.rows),
        "s" if len(kit.rows) > 1 else "",
    )
    try:
        kit.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(kit.output_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(output.content)
    except OSError as e:
        raise WriteError("cannot write kit ({})".format(e), kit.output_path) from e
    return kit.output_path


class _Placement:
    """Decides kit paths and sample references for one run."""

    def __init__(self, output: OutputTarget) -> None:
        self.output = output
        self.card = output.card
        # Resolved once so a bad sample directory fails before any write
        self.card_sample_dir = (
            self.card.resolve_sample_dir(output.sample_dir) if self.card is not None else None
        )

    def build_kit(self, rows: List[Row], default_path: Path) -> Kit:
        if self.card is None:
            return Kit(rows=rows, output_path=default_path)
        return Kit(
            rows=rows,
            output_path=self.card.next_kit_path(),
            sample_root=self.card.root,
            sample_dir=self.card_sample_dir,
        )

    def emit(self, kit: Kit, formatter: Optional[BaseFormatter]) -> Path:
        path = write_kit(kit, formatter)
        if kit.sample_dir is not None:
            # Samples are only copied once the kit itself is on the card
            for source in kit.sources():
                copy_sample(
                    source.path,
                    kit.sample_location_for(source),
                    replace=self.output.replace_samples,
                )
        return path


def _synthesize_per_file(
    extractions: List[Extraction],
    placement: _Placement,
    formatter: Optional[BaseFormatter],
) -> SynthesisResult:
    result = SynthesisResult()
    found_regions = False

    for item in extractions:
        if item.error is not None:
            logger.warning("Skipping %s", item.error)
            result.failures.append(item.error)
            continue
        if not item.regions:
            logger.info("No regions in '%s', no kit written", item.path)
            continue
        found_regions = True

        source = item.source
        rows, _ = map_regions(
            ((source, region) for region in item.regions),
            frozenset(),
            placement.output.playback_mode,
        )
        directory = placement.output.directory or source.path.parent
        kit_path = _unique_kit_path(directory / _kit_file_name(source.stem), result.written)
        kit = placement.build_kit(rows, kit_path)

        try:
            result.written.append(placement.emit(kit, formatter))
        except WriteError as e:
            logger.warning("Skipping %s", e)
            result.failures.append(e)

    if not found_regions and not result.failures:
        raise NothingToGenerate(
            "no regions found in {} input file(s)".format(len(extractions))
        )
    return result


def _synthesize_combined(
    extractions: List[Extraction],
    placement: _Placement,
    formatter: Optional[BaseFormatter],
) -> SynthesisResult:
    pairs = []
    for item in extractions:
        if item.error is not None:
            raise item.error
        if not item.regions:
            logger.info("No regions in '%s', ignored", item.path)
            continue
        pairs.extend((item.source, region) for region in item.regions)

    if not pairs:
        raise NothingToGenerate(
            "no regions found in {} input file(s)".format(len(extractions))
        )

    rows, _ = map_regions(pairs, frozenset(), placement.output.playback_mode)
    directory = placement.output.directory or extractions[0].path.parent
    kit = placement.build_kit(rows, directory / _kit_file_name(placement.output.kit_name))
    return SynthesisResult(written=[placement.emit(kit, formatter)])


def synthesize(
    files: Sequence[PathLike],
    combine_all: bool = False,
    output: Optional[OutputTarget] = None,
    workers: int = EXTRACT_WORKERS,
    formatter: Optional[BaseFormatter] = None,
) -> SynthesisResult:
    """Generate Deluge kits from the regions of *files*.

    Args:
        files: Input WAV paths, in the order rows should appear.
        combine_all: Write one kit spanning all files instead of one per file.
        output: Output placement; defaults to OutputTarget().
        workers: Extraction threads; 1 extracts serially.
        formatter: Kit renderer; defaults to DelugeKitFormatter.

    Returns:
        SynthesisResult with written kit paths and per-file failures
        (failures are only ever recorded in default mode).

    Raises:
        NothingToGenerate: No input contained a region.
        CardError: The card sample directory lies outside the card.
        KitGenError: Combine-all mode, the first failing file's error.
    """
    output = output or OutputTarget()
    placement = _Placement(output)
    extractions = extract_all(list(files), workers)

    if combine_all:
        return _synthesize_combined(extractions, placement, formatter)
    return _synthesize_per_file(extractions, placement, formatter)
