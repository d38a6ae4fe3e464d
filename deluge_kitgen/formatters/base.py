"""Abstract base formatter and output container.

WHY: The synthesizer should not care how a Kit becomes bytes on disk.
A formatter interface keeps rendering separate from file placement and
lets tests inspect rendered content without touching the filesystem.

HOW: BaseFormatter is an ABC with two requirements: a ``name`` property
and a ``format()`` method. FormatterOutput is a plain dataclass that
bundles a file suffix with its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` must be a pure function of the Kit
- ``suffix`` is the file extension, e.g. ``".XML"``
- The caller is responsible for choosing the output path
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from deluge_kitgen.core.ir import Kit


@dataclass
class FormatterOutput:
    """One rendered output file.

    Attributes:
        suffix: File extension of the output, e.g. ``".XML"``.
        content: The file content as text.
        media_type: MIME type for the content, e.g. ``"application/xml"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for kit formatters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Deluge kit XML'."""

    @abstractmethod
    def format(self, kit: Kit) -> list[FormatterOutput]:
        """Render the Kit into one or more output files.

        Args:
            kit: The complete kit, rows in device order.

        Returns:
            List of FormatterOutput objects.
        """
