"""Configuration constants for the YouTube comment harvester."""

from __future__ import annotations

import os
import re

API_BASE = "https://www.googleapis.com/youtube/v3"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
PLAYLIST_PAGE_SIZE = 50
COMMENT_PAGE_SIZE = 100
REPLY_PAGE_SIZE = 100
# commentThreads embeds at most 5 replies; fetch the rest through comments.list.
FETCH_ALL_REPLIES = os.getenv("FETCH_ALL_REPLIES", "1") not in ("0", "false", "no")
DEFAULT_OUTPUT = "comments.json"

API_KEY_SECRET = "youtube_api_key"
API_KEY_ENV = ("YT_APIKEY", "YOUTUBE_API_KEY")

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
PLAYLIST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{2,64}$")

__all__ = [
    "API_BASE",
    "WATCH_URL",
    "PLAYLIST_PAGE_SIZE",
    "COMMENT_PAGE_SIZE",
    "REPLY_PAGE_SIZE",
    "FETCH_ALL_REPLIES",
    "DEFAULT_OUTPUT",
    "API_KEY_SECRET",
    "API_KEY_ENV",
    "VIDEO_ID_RE",
    "PLAYLIST_ID_RE",
]
