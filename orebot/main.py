from __future__ import annotations

import sys

from orebot.cli import main


if __name__ == "__main__":
    sys.exit(main())
