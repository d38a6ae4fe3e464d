"""Shared test fixtures for the deluge_kitgen test suite.

WHY: Most tests need WAV files carrying region markers. Audio editors
write these as a ``cue `` chunk plus a ``LIST``/``adtl`` chunk with
labels and region lengths; building them here keeps every test on the
same, byte-exact layout.

HOW: write_wav() writes a short PCM-16 file with soundfile, then
append_chunks() appends raw RIFF chunks and patches the RIFF size.
make_sliced_wav() combines both from a list of (label, start, end)
tuples. The ``sliced_wav`` fixture returns that factory bound to
tmp_path.

RULES:
- Region tuples: (label or None, start frame, end frame or None);
  end None writes a plain marker without an ltxt length
- Cue ids are 1-based in list order, like most editors write them
- All files live under tmp_path
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest
import soundfile as sf

DEFAULT_FRAMES = 4000
DEFAULT_RATE = 44100

RegionTuple = Tuple[Optional[str], int, Optional[int]]


def write_wav(
    path: Path,
    frames: int = DEFAULT_FRAMES,
    sample_rate: int = DEFAULT_RATE,
    channels: int = 1,
) -> Path:
    """Write a deterministic PCM-16 WAV file without markers."""
    t = np.arange(frames) / sample_rate
    signal = (0.25 * np.sin(2 * np.pi * 220 * t)).astype(np.float32)
    if channels > 1:
        signal = np.column_stack([signal] * channels)
    sf.write(str(path), signal, sample_rate, subtype="PCM_16")
    return path


def _chunk(chunk_id: bytes, data: bytes) -> bytes:
    padding = b"\x00" if len(data) % 2 else b""
    return chunk_id + struct.pack("<I", len(data)) + data + padding


def append_chunks(path: Path, chunks: Sequence[Tuple[bytes, bytes]]) -> Path:
    """Append raw RIFF chunks to a WAV file and fix the RIFF size."""
    raw = bytearray(path.read_bytes())
    for chunk_id, data in chunks:
        raw += _chunk(chunk_id, data)
    struct.pack_into("<I", raw, 4, len(raw) - 8)
    path.write_bytes(bytes(raw))
    return path


def cue_chunk(points: Sequence[Tuple[int, int]]) -> Tuple[bytes, bytes]:
    """Build a ``cue `` chunk from (cue_id, frame position) pairs."""
    data = struct.pack("<I", len(points))
    for cue_id, position in points:
        data += struct.pack("<II4sIII", cue_id, position, b"data", 0, 0, position)
    return b"cue ", data


def adtl_chunk(
    labels: Dict[int, str],
    lengths: Optional[Dict[int, int]] = None,
) -> Tuple[bytes, bytes]:
    """Build a ``LIST``/``adtl`` chunk with labl and ltxt entries."""
    body = b"adtl"
    for cue_id, text in labels.items():
        body += _chunk(b"labl", struct.pack("<I", cue_id) + text.encode("utf-8") + b"\x00")
    for cue_id, length in (lengths or {}).items():
        body += _chunk(b"ltxt", struct.pack("<II4sHHHH", cue_id, length, b"rgn ", 0, 0, 0, 0))
    return b"LIST", body


def make_sliced_wav(
    path: Path,
    regions: Sequence[RegionTuple],
    frames: int = DEFAULT_FRAMES,
) -> Path:
    """Write a WAV file with one cue marker per region tuple."""
    write_wav(path, frames=frames)
    if not regions:
        return path

    points: List[Tuple[int, int]] = []
    labels: Dict[int, str] = {}
    lengths: Dict[int, int] = {}
    for index, (label, start, end) in enumerate(regions, start=1):
        points.append((index, start))
        if label is not None:
            labels[index] = label
        if end is not None:
            lengths[index] = end - start

    return append_chunks(path, [cue_chunk(points), adtl_chunk(labels, lengths)])


@pytest.fixture
def sliced_wav(tmp_path):
    """Factory: sliced_wav("kick.wav", [("tip", 0, 1000), ...]) -> Path."""

    def _make(name: str, regions: Sequence[RegionTuple], frames: int = DEFAULT_FRAMES) -> Path:
        return make_sliced_wav(tmp_path / name, regions, frames=frames)

    return _make


@pytest.fixture
def kick_wav(sliced_wav):
    """kick.wav with regions tip, mid, rim at 0-1000, 1000-2000, 2000-3000."""
    return sliced_wav(
        "kick.wav",
        [("tip", 0, 1000), ("mid", 1000, 2000), ("rim", 2000, 3000)],
    )
