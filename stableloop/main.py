#!/usr/bin/env python3
"""
Stablecoin loop dashboard
Entry point for ``python -m stableloop.main``
"""
from .cli import main

if __name__ == "__main__":
    main()
