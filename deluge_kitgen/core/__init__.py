"""Core extraction, row mapping and kit synthesis modules.

WHY: The core package holds the region-to-kit engine itself, separate
from the CLI and from the XML rendering in formatters/.

HOW: ir.py defines the data structures, regions.py reads markers from
WAV files, rows.py names rows, synthesizer.py assembles and writes
kits, card.py knows the Deluge SD card layout.

RULES:
- IR dataclasses are the contract; change with care
- Nothing here imports from the CLI
"""
