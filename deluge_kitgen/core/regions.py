"""Region marker extraction from WAV metadata.

WHY: Audio editors store regions as cue points inside the WAV file: the
``cue `` chunk lists marker positions in the order they were authored,
and an associated-data ``LIST``/``adtl`` chunk attaches labels (``labl``)
and region lengths (``ltxt``) to those markers. The kit synthesizer
needs these as an ordered list of named sample ranges.

HOW: read_source_file() asks libsndfile (via soundfile) for the audio
properties, which also rejects anything that is not a readable audio
file. read_markers() walks the RIFF chunks with a small tagged-variant
reader: known chunk kinds are parsed into dataclasses, ``data`` is
skipped without decoding, unknown chunks are ignored. extract_regions()
turns markers into Region objects, validating them against the file's
frame count.

RULES:
- Region order is the ``cue `` record order, never sorted by position
- A marker without an ``ltxt`` length (or with length 0) ends at the
  next marker in recorded order, or at the end of the file
- end <= start, or a range past the last frame, is CorruptMetadata
- Zero markers is not an error: the result is an empty list
- Names are transliterated to the Deluge charset; a marker without
  ``labl`` uses its ``note`` text, and one with neither takes the file stem
- An OSError while reading becomes InputNotFound for that file
- The file handle is closed before extract_regions() returns
"""

from __future__ import annotations

import logging
import re
import struct
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple, Union

import soundfile as sf

from deluge_kitgen.config import MAX_ROW_NAME_LENGTH
from deluge_kitgen.core.ir import Region, SourceFile
from deluge_kitgen.errors import (
    CorruptMetadata,
    InputNotFound,
    UnsupportedFormat,
)

logger = logging.getLogger(__name__)

_CHUNK_HEADER = struct.Struct("<4sI")
_CUE_RECORD = struct.Struct("<II4sIII")
_LTXT_HEADER = struct.Struct("<II4sHHHH")

# Characters the Deluge accepts in row names; everything else becomes "_".
_DISALLOWED_NAME_CHARS = re.compile(r"[^A-Za-z0-9 _\-.#()+!]")

_FALLBACK_NAME = "REGION"


# ---------------------------------------------------------------------------
# Chunk variants
# ---------------------------------------------------------------------------


@dataclass
class CuePoint:
    """One record of the ``cue `` chunk."""

    cue_id: int
    position: int


@dataclass
class CueChunk:
    points: List[CuePoint] = field(default_factory=list)


@dataclass
class AssociatedData:
    """Contents of a ``LIST``/``adtl`` chunk, keyed by cue id."""

    labels: Dict[int, str] = field(default_factory=dict)
    notes: Dict[int, str] = field(default_factory=dict)
    lengths: Dict[int, int] = field(default_factory=dict)


Chunk = Union[CueChunk, AssociatedData]


@dataclass
class Marker:
    """A cue point joined with its label and region length, if any."""

    cue_id: int
    position: int
    length: Optional[int] = None
    label: Optional[str] = None


def _decode_text(raw: bytes) -> str:
    text = raw.split(b"\x00", 1)[0]
    try:
        return text.decode("utf-8")
    except UnicodeDecodeError:
        return text.decode("latin-1")


def _parse_cue(data: bytes, path: Path) -> CueChunk:
    if len(data) < 4:
        raise CorruptMetadata("cue chunk is too short", path)
    (count,) = struct.unpack_from("<I", data, 0)
    expected = 4 + count * _CUE_RECORD.size
    if len(data) < expected:
        raise CorruptMetadata(
            "cue chunk declares {} points but holds {} bytes".format(count, len(data)),
            path,
        )
    chunk = CueChunk()
    for index in range(count):
        cue_id, _position, _chunk_id, _chunk_start, _block_start, sample_offset = (
            _CUE_RECORD.unpack_from(data, 4 + index * _CUE_RECORD.size)
        )
        chunk.points.append(CuePoint(cue_id=cue_id, position=sample_offset))
    return chunk


def _parse_list(data: bytes, path: Path) -> Optional[AssociatedData]:
    if len(data) < 4:
        raise CorruptMetadata("LIST chunk is too short", path)
    if data[:4] != b"adtl":
        # INFO and other list types carry nothing we need
        return None

    adtl = AssociatedData()
    offset = 4
    while offset + _CHUNK_HEADER.size <= len(data):
        sub_id, sub_size = _CHUNK_HEADER.unpack_from(data, offset)
        body_start = offset + _CHUNK_HEADER.size
        body = data[body_start:body_start + sub_size]
        if len(body) < sub_size:
            raise CorruptMetadata(
                "truncated '{}' entry in associated data".format(sub_id.decode("latin-1")),
                path,
            )

        if sub_id in (b"labl", b"note"):
            if sub_size < 4:
                raise CorruptMetadata("label entry is too short", path)
            (cue_id,) = struct.unpack_from("<I", body, 0)
            target = adtl.labels if sub_id == b"labl" else adtl.notes
            target[cue_id] = _decode_text(body[4:])
        elif sub_id == b"ltxt":
            if sub_size < _LTXT_HEADER.size:
                raise CorruptMetadata("ltxt entry is too short", path)
            cue_id, sample_length = _LTXT_HEADER.unpack_from(body, 0)[:2]
            adtl.lengths[cue_id] = sample_length
        else:
            logger.debug("Ignoring adtl entry %r in %s", sub_id, path)

        offset = body_start + sub_size + (sub_size & 1)
    return adtl


_CHUNK_PARSERS: Dict[bytes, Callable[[bytes, Path], Optional[Chunk]]] = {
    b"cue ": _parse_cue,
    b"LIST": _parse_list,
}


def _iter_chunks(handle: BinaryIO, path: Path):
    """Yield parsed marker chunks from an open RIFF/WAVE file.

    Chunks not listed in _CHUNK_PARSERS are skipped with a seek.
    """
    while True:
        header = handle.read(_CHUNK_HEADER.size)
        if len(header) < _CHUNK_HEADER.size:
            return
        chunk_id, size = _CHUNK_HEADER.unpack(header)
        padded = size + (size & 1)

        parser = _CHUNK_PARSERS.get(chunk_id)
        if parser is None:
            handle.seek(padded, 1)
            continue

        data = handle.read(size)
        if len(data) < size:
            raise CorruptMetadata(
                "truncated '{}' chunk".format(chunk_id.decode("latin-1").strip()), path
            )
        if size & 1:
            handle.read(1)

        parsed = parser(data, path)
        if parsed is not None:
            yield parsed


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def sanitize_name(text: str) -> str:
    """Transliterate *text* into a Deluge-safe row name.

    WHY: The Deluge displays row names on a small screen with a limited
    character set; rejecting a sample because an editor allowed an
    emoji in a marker name would be unhelpful.

    RULES:
    - Whitespace runs collapse to one space; leading/trailing removed
    - Accents are stripped (NFKD, combining marks dropped)
    - Anything outside [A-Za-z0-9 _-.#()+!] becomes "_"
    - Truncated to MAX_ROW_NAME_LENGTH
    - Deterministic: the same input always yields the same name
    """
    collapsed = " ".join(text.split())
    decomposed = unicodedata.normalize("NFKD", collapsed)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = _DISALLOWED_NAME_CHARS.sub("_", stripped)
    return cleaned[:MAX_ROW_NAME_LENGTH].strip()


def _check_container(path: Path) -> None:
    if not path.is_file():
        raise InputNotFound("not a file", path)

    try:
        with open(path, "rb") as handle:
            header = handle.read(12)
    except OSError as e:
        raise InputNotFound("cannot read file ({})".format(e), path) from e
    if len(header) < 12 or header[:4] != b"RIFF" or header[8:12] != b"WAVE":
        raise UnsupportedFormat("not a RIFF/WAVE audio file", path)


def read_source_file(path: str | Path) -> SourceFile:
    """Read the audio properties of *path*.

    Raises:
        InputNotFound: If the path is not a regular, readable file.
        UnsupportedFormat: If it is not a WAV file libsndfile can open.
    """
    path = Path(path)
    _check_container(path)
    return _read_audio_info(path)


def _read_audio_info(path: Path) -> SourceFile:
    try:
        info = sf.info(str(path))
    except RuntimeError as e:
        raise UnsupportedFormat("unreadable audio data ({})".format(e), path) from e

    return SourceFile(
        path=path,
        sample_rate=info.samplerate,
        channels=info.channels,
        frames=info.frames,
    )


def read_markers(path: str | Path) -> list[Marker]:
    """Read the cue markers of a WAV file in recorded order.

    Labels and lengths from every ``adtl`` list are joined onto the
    markers of the first ``cue `` chunk by cue id. A marker without a
    ``labl`` entry takes its ``note`` text as label.

    Raises:
        InputNotFound: If the file cannot be read.
        CorruptMetadata: If a marker chunk is malformed.
    """
    path = Path(path)
    cue: Optional[CueChunk] = None
    adtl = AssociatedData()

    try:
        with open(path, "rb") as handle:
            handle.seek(12)
            for chunk in _iter_chunks(handle, path):
                if isinstance(chunk, CueChunk):
                    if cue is None:
                        cue = chunk
                    else:
                        logger.warning("Ignoring extra cue chunk in %s", path)
                else:
                    adtl.labels.update(chunk.labels)
                    adtl.notes.update(chunk.notes)
                    adtl.lengths.update(chunk.lengths)
    except OSError as e:
        raise InputNotFound("cannot read file ({})".format(e), path) from e

    if cue is None:
        return []

    return [
        Marker(
            cue_id=point.cue_id,
            position=point.position,
            length=adtl.lengths.get(point.cue_id),
            label=adtl.labels.get(point.cue_id, adtl.notes.get(point.cue_id)),
        )
        for point in cue.points
    ]


def _resolve_end(markers: list[Marker], index: int, total_frames: int) -> int:
    marker = markers[index]
    if marker.length:
        return marker.position + marker.length
    if index + 1 < len(markers):
        return markers[index + 1].position
    return total_frames


def extract_regions(path: str | Path) -> Tuple[SourceFile, list[Region]]:
    """Extract the ordered regions of one WAV file.

    Args:
        path: Path to the source sample.

    Returns:
        The SourceFile and its regions in marker authoring order.

    Raises:
        InputNotFound, UnsupportedFormat, CorruptMetadata
    """
    path = Path(path)
    _check_container(path)
    # Marker structure is checked before libsndfile parses the same chunks
    markers = read_markers(path)
    source = _read_audio_info(path)
    fallback = sanitize_name(source.stem) or _FALLBACK_NAME

    regions: list[Region] = []
    for index, marker in enumerate(markers):
        start = marker.position
        end = _resolve_end(markers, index, source.frames)
        label = marker.label or ""

        if end <= start:
            raise CorruptMetadata(
                "marker '{}' ends before it starts ({} -> {})".format(label, start, end),
                source.path,
            )
        if end > source.frames:
            raise CorruptMetadata(
                "marker '{}' ({} -> {}) exceeds the {} frames of the file".format(
                    label, start, end, source.frames
                ),
                source.path,
            )

        name = sanitize_name(label) or fallback
        regions.append(Region(name=name, start=start, end=end))

    logger.info("Read %d region(s) from %s", len(regions), source.path)
    return source, regions
