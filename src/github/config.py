"""Configuration constants for the GitHub issue/discussion harvester."""

from __future__ import annotations

import re

GRAPHQL_URL = "https://api.github.com/graphql"
PAGE_SIZE = 100
EMBEDDED_REPLIES = 20
UNKNOWN_AUTHOR = "??"

TOKEN_SECRET = "github_token"
TOKEN_ENV = ("GITHUB_TOKEN",)

REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
NODE_ID_RE = re.compile(r"^[A-Za-z0-9_=-]{4,}$")

__all__ = [
    "GRAPHQL_URL",
    "PAGE_SIZE",
    "EMBEDDED_REPLIES",
    "UNKNOWN_AUTHOR",
    "TOKEN_SECRET",
    "TOKEN_ENV",
    "REPO_RE",
    "NODE_ID_RE",
]
