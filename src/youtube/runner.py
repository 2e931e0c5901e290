"""Entry points for harvesting YouTube comments into a single JSON document."""

from __future__ import annotations

import argparse
import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Iterable, List, Optional

import requests

from src.engine.aggregator import Aggregator
from src.engine.config import MAX_WORKERS
from src.engine.errors import InvalidInputError
from src.engine.models import AggregationResult
from src.engine.resolver import MemoizedResolver
from src.output import save_json
from src.secrets import resolve_credential

from .collectors import YouTubeCollector, validate_inputs, video_to_json
from .config import API_KEY_ENV, API_KEY_SECRET, DEFAULT_OUTPUT


def run(
    api_key: str,
    video_ids: Optional[Iterable[str]] = None,
    playlist_ids: Optional[Iterable[str]] = None,
    *,
    session: Optional[requests.Session] = None,
    max_workers: int = MAX_WORKERS,
    cancel_event: Optional[threading.Event] = None,
) -> AggregationResult:
    """Fetch direct videos and playlist members concurrently and aggregate them.

    Direct videos come first in the result, then each playlist's videos in the
    order the playlists were given; a video reachable twice is fetched once.
    """
    videos, playlists = validate_inputs(video_ids, playlist_ids)
    cancel_event = cancel_event or threading.Event()
    collector = YouTubeCollector(api_key, session=session, cancel_event=cancel_event)
    aggregator = Aggregator("videos")
    print(f"[info] fetching {len(videos)} videos and {len(playlists)} playlists with {max_workers} workers")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        resolver = MemoizedResolver(collector.fetch_video, executor, label="video")

        def expand(playlist_id: str):
            member_ids, error = collector.playlist_video_ids(playlist_id)
            return [resolver.submit(video_id) for video_id in member_ids], error

        listings = [executor.submit(expand, playlist_id) for playlist_id in playlists]
        aggregator.add_source("videos", [resolver.submit(video_id) for video_id in videos])
        for playlist_id, listing in zip(playlists, listings):
            aggregator.add_container(playlist_id, listing)

        try:
            return aggregator.collect()
        except KeyboardInterrupt:
            print("[warn] interrupted; stopping in-flight requests...")
            cancel_event.set()
            executor.shutdown(wait=True, cancel_futures=True)
            raise


def load_input_file(path: str):
    """Read a JSON file of the form {"videos": [...], "playlists": [...]}."""
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise InvalidInputError(f"{path}: expected a JSON object with 'videos' and 'playlists'")
    return list(data.get("videos") or []), list(data.get("playlists") or [])


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Dump YouTube comments (with replies) for videos and playlists to JSON.",
    )
    parser.add_argument("-k", "--key", help="YouTube API key (or YT_APIKEY / local_secrets.json).")
    parser.add_argument("-v", "--video", nargs="+", action="extend", default=[], help="Video IDs to process.")
    parser.add_argument("-p", "--playlist", nargs="+", action="extend", default=[], help="Playlist IDs to process.")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT, help="Output file (default comments.json).")
    parser.add_argument("-f", "--file", help="JSON file listing videos and playlists.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit code."""
    args = build_arg_parser().parse_args(argv)
    api_key = resolve_credential(args.key, API_KEY_SECRET, API_KEY_ENV)
    if not api_key:
        print(
            "A YouTube API key is required. Specify it with -k/--key, "
            "the YT_APIKEY environment variable or local_secrets.json."
        )
        return 1

    videos, playlists = args.video, args.playlist
    if args.file:
        print(f"Config: {args.file}")
        try:
            videos, playlists = load_input_file(args.file)
        except (OSError, json.JSONDecodeError, InvalidInputError) as exc:
            print(f"[error] cannot read input file {args.file}: {exc}")
            return 2

    print(f"Playlists: {', '.join(playlists)}" if playlists else "No playlists specified")
    print(f"Videos: {', '.join(videos)}" if videos else "No videos specified")

    started = time.monotonic()
    try:
        result = run(api_key, videos, playlists)
    except InvalidInputError as exc:
        print(f"[error] {exc}")
        return 2
    except KeyboardInterrupt:
        print("[warn] cancelled")
        return 130
    elapsed = timedelta(seconds=round(time.monotonic() - started))

    print()
    for report in result.failures:
        print(f"[warn] {report.scope} {report.source_id}: {report.reason}")
    if not result.entities:
        print("No videos processed.")
        return 1

    path = save_json(args.output, [video_to_json(entity) for entity in result.entities])
    print(f"Processed {result.succeeded} videos in {elapsed} ({result.summary()})")
    print(f"Wrote output to {path}")
    return 0


__all__ = ["run", "load_input_file", "build_arg_parser", "main"]
