"""Convenience shim to dump YouTube comments for videos and playlists."""

from __future__ import annotations

import sys

from src.youtube.runner import main as ytdump_main


if __name__ == "__main__":
    sys.exit(ytdump_main(sys.argv[1:]))
