"""
Print the columns and first row of every dataset the pipeline would load.

Handy when a platform changes its export layout: run it against the raw
folder to see which headers were found before running the full pipeline.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pulseboard.pipeline import main


if __name__ == "__main__":
    args = sys.argv[1:]
    if "--inspect" not in args:
        args.append("--inspect")
    raise SystemExit(main(args))
