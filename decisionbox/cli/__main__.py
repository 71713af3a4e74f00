"""
DecisionBox CLI entry point.

Usage:
    python -m decisionbox.cli check config.json
    python -m decisionbox.cli evaluate config.json --set tipo=Residencial
    python -m decisionbox.cli explain A config.json --set potencia=10
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
