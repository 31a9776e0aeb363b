"""
Face Extractor entrypoint for a source checkout.

Usage:
    python main.py --input images/ --output faces/
    python main.py --config my_config.yaml

When the package is installed, the same CLI is available as the
`face-extractor` console script. This module is the executable entry
point only. It should not be imported by other modules.
"""

import sys

from face_extractor.cli import main


if __name__ == "__main__":
    sys.exit(main())
