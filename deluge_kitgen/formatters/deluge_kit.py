"""Deluge kit XML formatter.

WHY: The Deluge loads kits from XML files on its SD card. The firmware
parser expects a fixed element layout, and users keep generated kits
under version control, so the same Kit must always render to the same
bytes.

HOW: build_document() turns the Kit into a plain-data document (one
entry per row with its sample reference, zone and play mode) and
validates it with jsonschema against kit.schema.json. format() renders
that document to XML with ElementTree, indented with tabs like the
files the Deluge writes itself.

RULES:
- Output is a pure function of the Kit: no timestamps, no UUIDs
- Element order inside <sound> and <osc1> is fixed (see _build_sound)
- fileName is a POSIX path relative to the kit's reference root
- Declaration is '<?xml version="1.0" encoding="UTF-8"?>', lines end in \\n
- Output suffix: KIT_EXTENSION (".XML")
"""

from __future__ import annotations

import json
import os
import xml.etree.ElementTree as ET
from pathlib import Path, PurePosixPath
from typing import Any

import jsonschema

from deluge_kitgen.config import (
    EARLIEST_COMPATIBLE_FIRMWARE,
    FIRMWARE_VERSION,
    KIT_EXTENSION,
)
from deluge_kitgen.core.ir import Kit, Row
from deluge_kitgen.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent / "kit.schema.json"

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Per-row parameter defaults, as the Deluge writes them for a fresh kit row.
# Values are signed 32-bit parameters in the firmware's hex notation.
_DEFAULT_PARAMS = (
    ("volume", "0x3504F334"),
    ("pan", "0x00000000"),
    ("oscAVolume", "0x7FFFFFFF"),
    ("oscBVolume", "0x80000000"),
)
_ENVELOPE_PARAMS = (
    ("attack", "0x80000000"),
    ("decay", "0xE6666654"),
    ("sustain", "0x7FFFFFFF"),
    ("release", "0x80000000"),
)


def _load_schema() -> dict[str, Any]:
    with open(_SCHEMA_PATH) as f:
        return json.load(f)


_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def sample_reference(kit: Kit, row: Row) -> str:
    """POSIX path of the row's sample relative to the kit's reference root.

    Falls back to the absolute path when no relative path exists
    (different drives on Windows).
    """
    location = kit.sample_location(row)
    try:
        relative = os.path.relpath(location, kit.reference_root())
    except ValueError:
        relative = str(Path(location).resolve())
    return PurePosixPath(*Path(relative).parts).as_posix()


def _text(parent: ET.Element, tag: str, value: Any) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = str(value)
    return element


def _build_oscillator(parent: ET.Element, tag: str, row_doc: dict[str, Any] | None) -> None:
    osc = ET.SubElement(parent, tag)
    _text(osc, "type", "sample")
    _text(osc, "loopMode", row_doc["loopMode"] if row_doc else 0)
    _text(osc, "reversed", 0)
    _text(osc, "timeStretchEnable", 0)
    _text(osc, "timeStretchAmount", 0)
    if row_doc is None:
        return
    _text(osc, "fileName", row_doc["fileName"])
    zone = ET.SubElement(osc, "zone")
    _text(zone, "startSamplePos", row_doc["startSamplePos"])
    _text(zone, "endSamplePos", row_doc["endSamplePos"])


def _build_sound(parent: ET.Element, row_doc: dict[str, Any]) -> None:
    """Append one <sound> row.

    Order: name, osc1, osc2, polyphonic, voicePriority, sideChainSend,
    defaultParams.
    """
    sound = ET.SubElement(parent, "sound")
    _text(sound, "name", row_doc["name"])
    _build_oscillator(sound, "osc1", row_doc)
    _build_oscillator(sound, "osc2", None)
    _text(sound, "polyphonic", "auto")
    _text(sound, "voicePriority", 1)
    _text(sound, "sideChainSend", 0)

    params = ET.SubElement(sound, "defaultParams")
    for tag, value in _DEFAULT_PARAMS:
        _text(params, tag, value)
    envelope = ET.SubElement(params, "envelope1")
    for tag, value in _ENVELOPE_PARAMS:
        _text(envelope, tag, value)


class DelugeKitFormatter(BaseFormatter):
    """Formatter that produces a Deluge kit XML file.

    RULES:
    - One <sound> per Row, in Row order
    - selectedDrumIndex is always 0 (first row)
    - The document is schema-validated before rendering
    """

    @property
    def name(self) -> str:
        return "Deluge kit XML"

    def build_document(self, kit: Kit) -> dict[str, Any]:
        """Build and validate the plain-data kit document.

        Raises:
            jsonschema.ValidationError: If the document does not conform
                to kit.schema.json. A Kit built by the synthesizer
                always conforms.
        """
        document: dict[str, Any] = {
            "firmwareVersion": FIRMWARE_VERSION,
            "earliestCompatibleFirmware": EARLIEST_COMPATIBLE_FIRMWARE,
            "rows": [
                {
                    "name": row.name,
                    "fileName": sample_reference(kit, row),
                    "startSamplePos": row.start,
                    "endSamplePos": row.end,
                    "loopMode": int(row.playback_mode),
                }
                for row in kit.rows
            ],
        }
        jsonschema.validate(instance=document, schema=_get_schema())
        return document

    def render(self, document: dict[str, Any]) -> str:
        """Render a validated kit document to XML text."""
        root = ET.Element("kit")
        root.set("firmwareVersion", document["firmwareVersion"])
        root.set("earliestCompatibleFirmware", document["earliestCompatibleFirmware"])

        sources = ET.SubElement(root, "soundSources")
        for row_doc in document["rows"]:
            _build_sound(sources, row_doc)
        _text(root, "selectedDrumIndex", 0)

        ET.indent(root, space="\t")
        return _XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"

    def format(self, kit: Kit) -> list[FormatterOutput]:
        """Convert the Kit into a Deluge kit XML file.

        Returns:
            A single-element list containing the XML output.
        """
        content = self.render(self.build_document(kit))
        return [
            FormatterOutput(
                suffix=KIT_EXTENSION,
                content=content,
                media_type="application/xml",
            )
        ]
