#!/usr/bin/env python3
"""Convenience runner for the field tracker.

Usage:
    python run.py --device-id esp01 --watch
"""
import logging
from field_tracker.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    raise SystemExit(main())
