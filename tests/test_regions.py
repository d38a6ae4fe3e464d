"""Unit tests for region marker extraction.

WHY: Region order decides which pad each slice lands on, and a marker
parsed with the wrong range silently plays the wrong audio. The reader
must also survive the extra chunks real editors write.

HOW: WAV files are built by the conftest helpers with explicit cue and
adtl chunks, then read back through extract_regions().

RULES:
- All file I/O uses tmp_path via the sliced_wav fixture
- Frame counts come from conftest.DEFAULT_FRAMES (4000)
"""

import io
import struct

import pytest

from deluge_kitgen.config import MAX_ROW_NAME_LENGTH
from deluge_kitgen.core import regions as regions_module
from deluge_kitgen.core.regions import (
    extract_regions,
    read_markers,
    read_source_file,
    sanitize_name,
)
from deluge_kitgen.errors import CorruptMetadata, InputNotFound, UnsupportedFormat
from tests.conftest import (
    DEFAULT_FRAMES,
    DEFAULT_RATE,
    adtl_chunk,
    append_chunks,
    cue_chunk,
    write_wav,
)


class TestExtractRegions:
    """extract_regions returns named ranges in authoring order."""

    def test_reads_named_regions(self, kick_wav):
        source, regions = extract_regions(kick_wav)

        assert source.path == kick_wav
        assert [(r.name, r.start, r.end) for r in regions] == [
            ("tip", 0, 1000),
            ("mid", 1000, 2000),
            ("rim", 2000, 3000),
        ]

    def test_source_properties(self, kick_wav):
        source, _ = extract_regions(kick_wav)

        assert source.sample_rate == DEFAULT_RATE
        assert source.channels == 1
        assert source.frames == DEFAULT_FRAMES

    def test_authoring_order_not_sorted(self, sliced_wav):
        path = sliced_wav("rev.wav", [("late", 3000, 3500), ("early", 0, 500), ("middle", 1500, 2000)])

        _, regions = extract_regions(path)
        assert [r.name for r in regions] == ["late", "early", "middle"]

    def test_no_markers_is_empty(self, tmp_path):
        path = write_wav(tmp_path / "plain.wav")

        source, regions = extract_regions(path)
        assert regions == []
        assert source.frames == DEFAULT_FRAMES

    def test_overlapping_regions_allowed(self, sliced_wav):
        path = sliced_wav("overlap.wav", [("a", 0, 2000), ("b", 1000, 3000)])

        _, regions = extract_regions(path)
        assert [(r.start, r.end) for r in regions] == [(0, 2000), (1000, 3000)]

    def test_region_may_end_at_last_frame(self, sliced_wav):
        path = sliced_wav("full.wav", [("all", 0, DEFAULT_FRAMES)])

        _, regions = extract_regions(path)
        assert regions[0].end == DEFAULT_FRAMES


class TestMarkersWithoutLength:
    """A marker without an ltxt length extends to the next marker or EOF."""

    def test_extends_to_next_marker(self, sliced_wav):
        path = sliced_wav("points.wav", [("one", 0, None), ("two", 1200, None)])

        _, regions = extract_regions(path)
        assert (regions[0].start, regions[0].end) == (0, 1200)

    def test_last_marker_extends_to_end_of_file(self, sliced_wav):
        path = sliced_wav("points.wav", [("one", 0, None), ("two", 1200, None)])

        _, regions = extract_regions(path)
        assert (regions[1].start, regions[1].end) == (1200, DEFAULT_FRAMES)

    def test_mixed_lengths(self, sliced_wav):
        path = sliced_wav("mixed.wav", [("one", 0, 300), ("two", 1000, None), ("three", 2500, 2600)])

        _, regions = extract_regions(path)
        assert [(r.start, r.end) for r in regions] == [(0, 300), (1000, 2500), (2500, 2600)]

    def test_zero_length_treated_as_point_marker(self, tmp_path):
        path = write_wav(tmp_path / "zero.wav")
        append_chunks(path, [
            cue_chunk([(1, 100), (2, 900)]),
            adtl_chunk({1: "a", 2: "b"}, {1: 0}),
        ])

        _, regions = extract_regions(path)
        assert (regions[0].start, regions[0].end) == (100, 900)


class TestNames:
    """Labels are sanitized; unlabeled markers fall back to the file stem."""

    def test_unlabeled_marker_uses_file_stem(self, sliced_wav):
        path = sliced_wav("snare.wav", [(None, 0, 1000)])

        _, regions = extract_regions(path)
        assert regions[0].name == "snare"

    def test_blank_label_uses_file_stem(self, sliced_wav):
        path = sliced_wav("snare.wav", [("   ", 0, 1000)])

        _, regions = extract_regions(path)
        assert regions[0].name == "snare"

    def test_non_ascii_label_is_transliterated(self, sliced_wav):
        path = sliced_wav("hat.wav", [("Crâsh ñ", 0, 1000)])

        _, regions = extract_regions(path)
        assert regions[0].name == "Crash n"

    def test_note_used_when_label_missing(self, tmp_path):
        path = write_wav(tmp_path / "noted.wav")
        note = struct.pack("<I", 1) + b"snap\x00"
        append_chunks(path, [
            cue_chunk([(1, 0)]),
            (b"LIST", b"adtl" + b"note" + struct.pack("<I", len(note)) + note),
        ])

        _, regions = extract_regions(path)
        assert regions[0].name == "snap"

    def test_latin1_label_is_decoded(self, tmp_path):
        path = write_wav(tmp_path / "old.wav")
        labl = struct.pack("<I", 1) + "Café".encode("latin-1") + b"\x00"
        append_chunks(path, [
            cue_chunk([(1, 0)]),
            (b"LIST", b"adtl" + b"labl" + struct.pack("<I", len(labl)) + labl + b"\x00"),
        ])

        _, regions = extract_regions(path)
        assert regions[0].name == "Cafe"


class TestSanitizeName:

    def test_keeps_allowed_characters(self):
        assert sanitize_name("Kick-01 (soft) #2") == "Kick-01 (soft) #2"

    def test_replaces_illegal_characters(self):
        assert sanitize_name("a/b:c*d") == "a_b_c_d"

    def test_collapses_whitespace(self):
        assert sanitize_name("  big \t  room  ") == "big room"

    def test_truncates(self):
        name = sanitize_name("x" * 100)
        assert name == "x" * MAX_ROW_NAME_LENGTH

    def test_deterministic(self):
        assert sanitize_name("Ünïcødé 🥁") == sanitize_name("Ünïcødé 🥁")


class TestChunkWalk:
    """Unknown chunks are ignored; known chunks are validated."""

    def test_ignores_unknown_chunks(self, tmp_path):
        path = write_wav(tmp_path / "extra.wav")
        append_chunks(path, [
            (b"JUNK", b"\x00" * 8),
            (b"LIST", b"INFOISFT" + struct.pack("<I", 4) + b"abc\x00"),
            cue_chunk([(1, 10)]),
            (b"fake", b"\x01\x02\x03\x04"),
            adtl_chunk({1: "hit"}, {1: 90}),
        ])

        _, regions = extract_regions(path)
        assert [(r.name, r.start, r.end) for r in regions] == [("hit", 10, 100)]

    def test_odd_sized_chunk_is_padded(self, tmp_path):
        path = write_wav(tmp_path / "odd.wav")
        append_chunks(path, [
            (b"odd ", b"\x01\x02\x03"),
            cue_chunk([(1, 10)]),
            adtl_chunk({1: "pad"}),
        ])

        markers = read_markers(path)
        assert [(m.label, m.position) for m in markers] == [("pad", 10)]

    def test_labels_matched_by_cue_id(self, tmp_path):
        path = write_wav(tmp_path / "ids.wav")
        append_chunks(path, [
            cue_chunk([(7, 0), (3, 2000)]),
            adtl_chunk({3: "second", 7: "first"}, {7: 500, 3: 500}),
        ])

        markers = read_markers(path)
        assert [(m.cue_id, m.label, m.length) for m in markers] == [
            (7, "first", 500),
            (3, "second", 500),
        ]

    def test_cue_count_larger_than_chunk(self, tmp_path):
        path = write_wav(tmp_path / "short.wav")
        cue_id, data = cue_chunk([(1, 0)])
        bad = struct.pack("<I", 5) + data[4:]
        append_chunks(path, [(cue_id, bad)])

        with pytest.raises(CorruptMetadata, match="declares 5 points"):
            extract_regions(path)

    def test_truncated_marker_chunk(self, tmp_path):
        path = write_wav(tmp_path / "trunc.wav")
        raw = path.read_bytes() + b"cue " + struct.pack("<I", 100) + struct.pack("<I", 1)
        path.write_bytes(raw)

        with pytest.raises(CorruptMetadata, match="truncated"):
            extract_regions(path)


class TestFailures:

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputNotFound) as info:
            extract_regions(tmp_path / "nope.wav")
        assert info.value.path == tmp_path / "nope.wav"

    def test_directory_is_not_a_file(self, tmp_path):
        with pytest.raises(InputNotFound):
            extract_regions(tmp_path)

    def test_unreadable_file(self, kick_wav, monkeypatch):
        def _denied(file, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(file))

        monkeypatch.setattr(regions_module, "open", _denied, raising=False)
        with pytest.raises(InputNotFound, match="cannot read file") as info:
            extract_regions(kick_wav)
        assert info.value.path == kick_wav

    def test_read_error_while_walking_chunks(self, kick_wav, monkeypatch):
        class _FailingHandle(io.BytesIO):
            def read(self, *args):
                raise OSError(5, "Input/output error")

        def _failing_open(file, *args, **kwargs):
            return _FailingHandle()

        monkeypatch.setattr(regions_module, "open", _failing_open, raising=False)
        with pytest.raises(InputNotFound, match="Input/output error"):
            read_markers(kick_wav)

    def test_text_file_is_unsupported(self, tmp_path):
        path = tmp_path / "notes.wav"
        path.write_text("not audio at all", encoding="utf-8")

        with pytest.raises(UnsupportedFormat) as info:
            extract_regions(path)
        assert "notes.wav" in str(info.value)

    def test_riff_without_audio_is_unsupported(self, tmp_path):
        path = tmp_path / "empty.wav"
        path.write_bytes(b"RIFF" + struct.pack("<I", 4) + b"WAVE")

        with pytest.raises(UnsupportedFormat):
            read_source_file(path)

    def test_region_past_end_of_file(self, sliced_wav):
        path = sliced_wav("long.wav", [("big", 0, DEFAULT_FRAMES + 1)])

        with pytest.raises(CorruptMetadata, match="exceeds"):
            extract_regions(path)

    def test_marker_past_end_of_file(self, sliced_wav):
        path = sliced_wav("late.wav", [("late", DEFAULT_FRAMES + 10, None)])

        with pytest.raises(CorruptMetadata):
            extract_regions(path)

    def test_unsorted_point_markers_are_corrupt(self, sliced_wav):
        path = sliced_wav("back.wav", [("b", 2000, None), ("a", 1000, None)])

        with pytest.raises(CorruptMetadata, match="ends before it starts"):
            extract_regions(path)
