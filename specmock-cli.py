#!/usr/bin/env python3
"""
Specmock - Mock API server generated from OpenAPI / Swagger contracts

This is a convenience wrapper that calls the packaged implementation.
The actual implementation is in src/specmock/cli.py

Usage:
    python specmock-cli.py serve --specs-dir specs --port 8080
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from specmock.cli import main

if __name__ == '__main__':
    main()
