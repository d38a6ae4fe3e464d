"""Package entry point for ``python -m deluge_kitgen``.

WHY: Users run the generator as ``python -m deluge_kitgen kick.wav``
without installing the console script.

HOW: Delegates to the CLI's main() and exits with its return code.
"""

import sys

from deluge_kitgen.cli import main

if __name__ == "__main__":
    sys.exit(main())
