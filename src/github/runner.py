"""Entry points for exporting GitHub issues and discussions to JSON."""

from __future__ import annotations

import argparse
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import requests

from src.engine.aggregator import Aggregator
from src.engine.config import MAX_WORKERS
from src.engine.errors import InvalidInputError
from src.engine.models import AggregationResult
from src.engine.resolver import MemoizedResolver
from src.output import save_json
from src.secrets import resolve_credential

from .collectors import GitHubCollector, entity_to_json, parse_repository, validate_issue_ids
from .config import TOKEN_ENV, TOKEN_SECRET


def run(
    token: str,
    repos: Sequence[str],
    *,
    issue_ids: Optional[Iterable[str]] = None,
    labels: Optional[Sequence[str]] = None,
    include_discussions: Optional[bool] = None,
    session: Optional[requests.Session] = None,
    max_workers: int = MAX_WORKERS,
    cancel_event: Optional[threading.Event] = None,
) -> Tuple[AggregationResult, Optional[AggregationResult]]:
    """Collect issues (and discussions unless disabled) for the given repositories.

    Discussions default to on only when no label filter is given. Returns the
    issue collection and the discussion collection (None when not requested).
    """
    for repo in repos:
        parse_repository(repo)
    direct_ids = validate_issue_ids(issue_ids)
    if not repos and not direct_ids:
        raise InvalidInputError("No repository or issue specified")
    labels = [label for label in (labels or []) if label]
    if include_discussions is None:
        include_discussions = not labels

    cancel_event = cancel_event or threading.Event()
    collector = GitHubCollector(token, session=session, cancel_event=cancel_event)
    issues = Aggregator("issues")
    discussions = Aggregator("discussions") if include_discussions else None
    print(f"[info] fetching {len(repos)} repositories and {len(direct_ids)} issues with {max_workers} workers")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        issue_resolver = MemoizedResolver(collector.fetch_issue, executor, label="issue")
        discussion_resolver = MemoizedResolver(collector.fetch_discussion, executor, label="discussion")

        def expand_issues(repo: str):
            nodes, error = collector.list_issues(repo, labels)
            return [issue_resolver.submit(node["id"], node) for node in nodes if node.get("id")], error

        def expand_discussions(repo: str):
            nodes, error = collector.list_discussions(repo)
            return [discussion_resolver.submit(node["id"], node) for node in nodes if node.get("id")], error

        issue_listings = [executor.submit(expand_issues, repo) for repo in repos]
        discussion_listings = (
            [executor.submit(expand_discussions, repo) for repo in repos] if discussions else []
        )

        issues.add_source("issues", [issue_resolver.submit(issue_id) for issue_id in direct_ids])
        for repo, listing in zip(repos, issue_listings):
            issues.add_container(repo, listing)
        if discussions is not None:
            for repo, listing in zip(repos, discussion_listings):
                discussions.add_container(repo, listing)

        try:
            issue_result = issues.collect()
            discussion_result = discussions.collect() if discussions is not None else None
        except KeyboardInterrupt:
            print("[warn] interrupted; stopping in-flight requests...")
            cancel_event.set()
            executor.shutdown(wait=True, cancel_futures=True)
            raise
    return issue_result, discussion_result


def _repo_part(repos: Sequence[str]) -> str:
    return "_".join(repo.replace("/", "_") for repo in repos) or "direct"


def issues_filename(repos: Sequence[str], labels: Sequence[str]) -> str:
    labels_part = "_".join(labels) if labels else "all"
    return f"issues_{_repo_part(repos)}_{labels_part}_output.json"


def discussions_filename(repos: Sequence[str]) -> str:
    return f"discussions_{_repo_part(repos)}_output.json"


def _report(kind: str, result: AggregationResult, path: str, elapsed: timedelta) -> None:
    for report in result.failures:
        print(f"[warn] {report.scope} {report.source_id}: {report.reason}")
    print(f"Processed {result.succeeded} {kind} in {elapsed} ({result.summary()})")
    print(f"{kind.capitalize()} have been written to {path}")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CLI tool for extracting GitHub issues and discussions in a JSON format.",
    )
    parser.add_argument("-t", "--token", help="GitHub access token (or GITHUB_TOKEN / local_secrets.json).")
    parser.add_argument("-r", "--repository", action="append", default=[],
                        help="GitHub repository in the format owner/repo (repeatable).")
    parser.add_argument("-i", "--issue", nargs="+", action="extend", default=[],
                        help="Issue node IDs to export in addition to repository issues.")
    parser.add_argument("-l", "--labels", nargs="+", action="extend", default=[],
                        help="Only export issues carrying these labels.")
    parser.add_argument("-d", "--include-discussions", dest="include_discussions",
                        action=argparse.BooleanOptionalAction, default=None,
                        help="Include GitHub discussions (default: only when no labels are given).")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit code."""
    args = build_arg_parser().parse_args(argv)
    token = resolve_credential(args.token, TOKEN_SECRET, TOKEN_ENV)
    if not token:
        print(
            "A GitHub access token is required. Specify it with -t/--token, "
            "the GITHUB_TOKEN environment variable or local_secrets.json."
        )
        return 1

    repos, labels = args.repository, args.labels
    print(f"Repository: {', '.join(repos)}" if repos else "No repository specified.")
    print(f"Labels: {', '.join(labels)}" if labels else "No Labels specified.")
    include = args.include_discussions if args.include_discussions is not None else not labels
    print(f"Including discussions: {'yes' if include else 'no'}")

    started = time.monotonic()
    try:
        issue_result, discussion_result = run(
            token, repos, issue_ids=args.issue, labels=labels, include_discussions=include,
        )
    except InvalidInputError as exc:
        print(f"[error] {exc}")
        return 2
    except KeyboardInterrupt:
        print("[warn] cancelled")
        return 130
    elapsed = timedelta(seconds=round(time.monotonic() - started))

    print()
    path = save_json(issues_filename(repos, labels), [entity_to_json(e) for e in issue_result.entities])
    _report("issues", issue_result, path, elapsed)
    if discussion_result is not None:
        path = save_json(discussions_filename(repos), [entity_to_json(e) for e in discussion_result.entities])
        _report("discussions", discussion_result, path, elapsed)
    return 0


__all__ = [
    "run",
    "issues_filename",
    "discussions_filename",
    "build_arg_parser",
    "main",
]
