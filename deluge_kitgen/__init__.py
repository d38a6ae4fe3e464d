"""Deluge Kit Generator: region markers to Synthstrom Deluge kits.

WHY: Musicians slice drum hits and one-shots in an audio editor by
placing named regions in a WAV file. The Deluge needs one kit row per
slice. This package reads those regions and writes the kit XML, so a
sliced sample becomes a playable kit without manual row editing.

HOW: Three-stage pipeline: extract (WAV cue/adtl markers → regions),
map (regions → uniquely named rows), synthesize (rows → kit XML files).
Each stage is independently testable.

RULES:
- The IR in core.ir is the contract between stages
- Row order is marker authoring order, file by file
- Output is deterministic: same inputs, same bytes
"""

__version__ = "0.1.0"
