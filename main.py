#!/usr/bin/env python3
"""Main entry point for PowerLog.

This file allows running the application directly with:
    uv run python main.py

For full CLI usage, use:
    uv run powerlog --help
"""

from powerlog.cli import cli

if __name__ == "__main__":
    cli()
