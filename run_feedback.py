"""Convenience shim to export GitHub issues and discussions."""

from __future__ import annotations

import sys

from src.github.runner import main as feedback_main


if __name__ == "__main__":
    sys.exit(feedback_main(sys.argv[1:]))
