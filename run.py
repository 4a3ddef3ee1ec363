#!/usr/bin/env python3
"""
deckgen runner

Runs the deckgen command-line interface from a source checkout.
"""

import sys
import os

# Add src to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from deckgen.cli import main

if __name__ == "__main__":
    sys.exit(main())
