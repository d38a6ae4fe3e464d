"""Kit formatters.

WHY: Rendering is kept apart from synthesis so the XML layout can be
tested on hand-built Kits without any WAV files.

HOW: base.py defines the formatter interface, deluge_kit.py renders the
Deluge kit XML.
"""

from deluge_kitgen.formatters.base import BaseFormatter, FormatterOutput
from deluge_kitgen.formatters.deluge_kit import DelugeKitFormatter

__all__ = ["BaseFormatter", "DelugeKitFormatter", "FormatterOutput"]
