"""GitHub GraphQL collectors for open issues and discussions with all their comments."""

from __future__ import annotations

import datetime as dt
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from src.engine.errors import InvalidInputError, MalformedResponse, NotFound
from src.engine.flatten import flatten_flat, flatten_threads
from src.engine.http_client import RateLimitRetryPolicy, build_session, run_graphql_query
from src.engine.models import AggregatedEntity, CommentNode, Page
from src.engine.pagination import CursorPaginator

from .config import EMBEDDED_REPLIES, GRAPHQL_URL, PAGE_SIZE, NODE_ID_RE, REPO_RE, UNKNOWN_AUTHOR
from .queries import (
    DISCUSSION_COMMENTS_QUERY,
    DISCUSSION_REPLIES_QUERY,
    DISCUSSIONS_QUERY,
    ISSUE_COMMENTS_QUERY,
    ISSUE_NODE_QUERY,
    ISSUES_QUERY,
)


def parse_repository(full_name: str) -> Tuple[str, str]:
    """Split `owner/repo`; anything else is a fatal input error."""
    value = (full_name or "").strip()
    if not REPO_RE.match(value):
        raise InvalidInputError(
            f"Invalid repository format {full_name!r}, expected owner/repository"
        )
    owner, name = value.split("/", 1)
    return owner, name


def validate_issue_ids(issue_ids: Optional[Iterable[str]]) -> List[str]:
    """Strip direct issue node IDs and reject anything that is not a node ID."""
    ids = [i.strip() for i in (issue_ids or []) if i and i.strip()]
    bad = [i for i in ids if not NODE_ID_RE.match(i)]
    if bad:
        raise InvalidInputError(f"invalid issue node IDs: {', '.join(bad)}")
    return ids


def to_utc(raw: Optional[str]) -> Optional[str]:
    """Normalize a GitHub timestamp to `YYYY-MM-DDTHH:MM:SSZ`; unparsable values pass through."""
    if not raw:
        return raw
    try:
        parsed = dt.datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def connection_page(conn: Any, what: str) -> Page:
    """Map a GraphQL connection (`nodes` or `edges`, plus `pageInfo`) onto a Page."""
    if not isinstance(conn, dict):
        raise MalformedResponse(f"{what}: missing connection in response")
    if "nodes" in conn:
        raw = conn.get("nodes") or []
    else:
        edges = conn.get("edges") or []
        if not isinstance(edges, list) or not all(isinstance(e, dict) or e is None for e in edges):
            raise MalformedResponse(f"{what}: edges must be objects")
        raw = [e.get("node") for e in edges if e]
    if not isinstance(raw, list):
        raise MalformedResponse(f"{what}: nodes must be a list")
    nodes = [n for n in raw if n is not None]
    if not all(isinstance(n, dict) for n in nodes):
        raise MalformedResponse(f"{what}: nodes must be objects")
    info = conn.get("pageInfo")
    if not isinstance(info, dict):
        info = {}
    return Page(nodes, info.get("endCursor"), bool(info.get("hasNextPage")))


def comment_from_node(node: Dict[str, Any], parent_id: Optional[str] = None) -> CommentNode:
    return CommentNode(
        id=node.get("id") or "",
        author=(node.get("author") or {}).get("login") or UNKNOWN_AUTHOR,
        text=node.get("body") or "",
        published_at=node.get("createdAt"),
        parent_id=parent_id,
        url=node.get("url"),
    )


class GitHubCollector:
    """Fetch issue and discussion containers and complete each entity's comments."""

    def __init__(
        self,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.session = session or build_session(headers={"Authorization": f"Bearer {token}"})
        self.cancel_event = cancel_event

    def policy(self, label: str) -> RateLimitRetryPolicy:
        return RateLimitRetryPolicy(self.session, label=label, cancel_event=self.cancel_event)

    def _paginate(self, label: str, query: str, variables: Dict[str, Any], path: Sequence[str],
                  start_cursor: Optional[str] = None) -> CursorPaginator:
        """Paginator over the connection found at `path` inside `data`."""
        policy = self.policy(label)

        def fetch(cursor: Optional[str]) -> Page:
            data = run_graphql_query(policy, GRAPHQL_URL, query, {**variables, "after": cursor})
            conn: Any = data
            for key in path:
                conn = conn.get(key) if isinstance(conn, dict) else None
            if conn is None and path[0] == "node":
                raise NotFound(f"{label}: node {variables.get('id')} not found")
            return connection_page(conn, label)

        return CursorPaginator(fetch, label=label, start_cursor=start_cursor, cancel_event=self.cancel_event)

    def _remaining(self, label: str, embedded: Any, query: str, variables: Dict[str, Any],
                   path: Sequence[str]) -> Tuple[List[Any], Optional[str]]:
        """Items of an embedded first page plus any continuation pages."""
        first = connection_page(embedded or {"nodes": []}, label)
        if not first.has_more:
            return list(first.items), None
        paginator = self._paginate(label, query, variables, path, start_cursor=first.cursor)
        return list(first.items) + paginator.collect(), paginator.error or (
            "cancelled" if paginator.cancelled else None
        )

    def list_issues(self, repo: str, labels: Optional[Iterable[str]] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Open issue nodes of a repository, optionally filtered by labels."""
        owner, name = parse_repository(repo)
        label_list = [label for label in (labels or []) if label] or None
        paginator = self._paginate(
            f"issues {repo}",
            ISSUES_QUERY,
            {"owner": owner, "name": name, "labels": label_list, "pageSize": PAGE_SIZE},
            ("repository", "issues"),
        )
        nodes = paginator.collect()
        print(f"  found {len(nodes)} open issues in {repo}")
        return nodes, paginator.error or ("cancelled" if paginator.cancelled else None)

    def list_discussions(self, repo: str) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        owner, name = parse_repository(repo)
        paginator = self._paginate(
            f"discussions {repo}",
            DISCUSSIONS_QUERY,
            {"owner": owner, "name": name, "pageSize": PAGE_SIZE, "replies": EMBEDDED_REPLIES},
            ("repository", "discussions"),
        )
        nodes = paginator.collect()
        print(f"  found {len(nodes)} discussions in {repo}")
        return nodes, paginator.error or ("cancelled" if paginator.cancelled else None)

    def get_issue_node(self, issue_id: str) -> Dict[str, Any]:
        data = run_graphql_query(
            self.policy(f"issue {issue_id}"), GRAPHQL_URL, ISSUE_NODE_QUERY,
            {"id": issue_id, "pageSize": PAGE_SIZE},
        )
        node = data.get("node")
        if not node or node.get("__typename") != "Issue":
            raise NotFound(f"issue {issue_id} not found")
        return node

    def fetch_issue(self, issue_id: str, seed: Optional[Dict[str, Any]] = None) -> AggregatedEntity:
        """Complete one issue; `seed` is the node already returned by a container page."""
        node = seed or self.get_issue_node(issue_id)
        print(f"  processing issue {node.get('title')} ({node.get('url')})")
        comment_nodes, error = self._remaining(
            f"comments {issue_id}",
            node.get("comments"),
            ISSUE_COMMENTS_QUERY,
            {"id": issue_id, "pageSize": PAGE_SIZE},
            ("node", "comments"),
        )
        comments = flatten_flat(comment_from_node(c) for c in comment_nodes)
        fields = {
            "title": node.get("title") or "",
            "url": node.get("url"),
            "createdAt": to_utc(node.get("createdAt")),
            "lastUpdated": to_utc(node.get("updatedAt")),
            "body": node.get("body") or "",
            "upvotes": int((node.get("reactions") or {}).get("totalCount") or 0),
            "labels": [l.get("name") for l in ((node.get("labels") or {}).get("nodes") or []) if l],
        }
        return AggregatedEntity(
            id=issue_id,
            kind="issue",
            fields=fields,
            comments=tuple(comments),
            warning=f"comments: {error}" if error else None,
        )

    def fetch_discussion(self, discussion_id: str, seed: Dict[str, Any]) -> AggregatedEntity:
        """Complete one discussion: all comments and all replies, hoisted flat."""
        print(f"  processing discussion {seed.get('title')} ({seed.get('url')})")
        problems: List[str] = []
        comment_nodes, error = self._remaining(
            f"comments {discussion_id}",
            seed.get("comments"),
            DISCUSSION_COMMENTS_QUERY,
            {"id": discussion_id, "pageSize": PAGE_SIZE, "replies": EMBEDDED_REPLIES},
            ("node", "comments"),
        )
        if error:
            problems.append(f"comments: {error}")

        threads = []
        for comment in comment_nodes:
            reply_nodes, reply_error = self._remaining(
                f"replies {comment.get('id')}",
                comment.get("replies"),
                DISCUSSION_REPLIES_QUERY,
                {"id": comment.get("id"), "pageSize": PAGE_SIZE},
                ("node", "replies"),
            )
            if reply_error:
                problems.append(f"replies of {comment.get('id')}: {reply_error}")
            root = comment_from_node(comment)
            threads.append((root, [comment_from_node(r, root.id) for r in reply_nodes]))

        fields = {
            "title": seed.get("title") or "",
            "answerId": (seed.get("answer") or {}).get("id"),
            "url": seed.get("url"),
        }
        return AggregatedEntity(
            id=discussion_id,
            kind="discussion",
            fields=fields,
            comments=tuple(flatten_threads(threads)),
            warning="; ".join(problems) or None,
        )


def comment_to_json(node: CommentNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "author": node.author,
        "createdAt": node.published_at,
        "content": node.text,
        "url": node.url,
        "parentId": node.parent_id,
    }


def entity_to_json(entity: AggregatedEntity) -> Dict[str, Any]:
    """Issue or discussion document: its fields plus the flat comment list."""
    return {"id": entity.id, **entity.fields, "comments": [comment_to_json(c) for c in entity.comments]}


__all__ = [
    "parse_repository",
    "validate_issue_ids",
    "to_utc",
    "connection_page",
    "comment_from_node",
    "GitHubCollector",
    "comment_to_json",
    "entity_to_json",
]
