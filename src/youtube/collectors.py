"""YouTube Data API collectors: playlist expansion, video metadata, comment threads."""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from src.engine.errors import (
    InvalidInputError,
    MalformedResponse,
    NotFound,
    RemoteRejected,
    RetryBudgetExhausted,
)
from src.engine.flatten import flatten_threads
from src.engine.http_client import RateLimitRetryPolicy, build_session
from src.engine.models import AggregatedEntity, CommentNode, Page
from src.engine.pagination import CursorPaginator

from .config import (
    API_BASE,
    COMMENT_PAGE_SIZE,
    FETCH_ALL_REPLIES,
    PLAYLIST_ID_RE,
    PLAYLIST_PAGE_SIZE,
    REPLY_PAGE_SIZE,
    VIDEO_ID_RE,
    WATCH_URL,
)

# (root comment, embedded replies, total reply count reported by the API)
ThreadItem = Tuple[CommentNode, List[CommentNode], int]


def validate_inputs(video_ids: Optional[Iterable[str]],
                    playlist_ids: Optional[Iterable[str]]) -> Tuple[List[str], List[str]]:
    """Strip and check identifiers; raise InvalidInputError before anything is fetched."""
    videos = [v.strip() for v in (video_ids or []) if v and v.strip()]
    playlists = [p.strip() for p in (playlist_ids or []) if p and p.strip()]
    bad_videos = [v for v in videos if not VIDEO_ID_RE.match(v)]
    bad_playlists = [p for p in playlists if not PLAYLIST_ID_RE.match(p)]
    if bad_videos or bad_playlists:
        problems = []
        if bad_videos:
            problems.append(f"invalid video IDs: {', '.join(bad_videos)}")
        if bad_playlists:
            problems.append(f"invalid playlist IDs: {', '.join(bad_playlists)}")
        raise InvalidInputError("; ".join(problems))
    if not videos and not playlists:
        raise InvalidInputError("No videos, playlists or configuration file specified")
    return videos, playlists


def _require_object(payload: Any, what: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedResponse(f"{what}: expected a JSON object, got {type(payload).__name__}")
    return payload


def _child(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def _require_items(payload: Dict[str, Any], what: str) -> List[Dict[str, Any]]:
    items = payload.get("items") or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise MalformedResponse(f"{what}: items must be a list of objects")
    return items


def comment_from_resource(resource: Dict[str, Any]) -> CommentNode:
    """Build a node from a `comment` resource (id + snippet)."""
    snippet = _child(resource, "snippet")
    return CommentNode(
        id=resource.get("id") or "",
        author=snippet.get("authorDisplayName") or "",
        text=snippet.get("textDisplay") or "",
        published_at=snippet.get("publishedAt"),
        parent_id=snippet.get("parentId"),
    )


def parse_playlist_page(payload: Any) -> Page:
    payload = _require_object(payload, "playlistItems")
    video_ids = []
    for item in _require_items(payload, "playlistItems"):
        video_id = _child(_child(item, "snippet"), "resourceId").get("videoId")
        if video_id:
            video_ids.append(video_id)
    token = payload.get("nextPageToken")
    return Page(video_ids, token, bool(token))


def parse_comment_threads_page(payload: Any) -> Page:
    payload = _require_object(payload, "commentThreads")
    threads: List[ThreadItem] = []
    for item in _require_items(payload, "commentThreads"):
        snippet = _child(item, "snippet")
        top = _child(snippet, "topLevelComment")
        root = comment_from_resource({"id": top.get("id") or item.get("id"), "snippet": top.get("snippet")})
        embedded = _child(item, "replies").get("comments") or []
        if not isinstance(embedded, list) or not all(isinstance(reply, dict) for reply in embedded):
            raise MalformedResponse("commentThreads: replies must be objects")
        replies = [comment_from_resource(reply) for reply in embedded]
        try:
            total = int(snippet.get("totalReplyCount") or len(replies))
        except (TypeError, ValueError):
            total = len(replies)
        threads.append((root, replies, total))
    token = payload.get("nextPageToken")
    return Page(threads, token, bool(token))


def parse_replies_page(payload: Any) -> Page:
    payload = _require_object(payload, "comments")
    replies = [comment_from_resource(item) for item in _require_items(payload, "comments")]
    token = payload.get("nextPageToken")
    return Page(replies, token, bool(token))


class YouTubeCollector:
    """Fetch playlists and videos; one retry policy per paginated stream."""

    def __init__(
        self,
        api_key: str,
        *,
        session: Optional[requests.Session] = None,
        cancel_event: Optional[threading.Event] = None,
        fetch_all_replies: bool = FETCH_ALL_REPLIES,
    ) -> None:
        self.api_key = api_key
        self.session = session or build_session()
        self.cancel_event = cancel_event
        self.fetch_all_replies = fetch_all_replies

    def policy(self, label: str) -> RateLimitRetryPolicy:
        return RateLimitRetryPolicy(self.session, label=label, cancel_event=self.cancel_event)

    def _get(self, policy: RateLimitRetryPolicy, resource: str, params: Dict[str, Any]) -> Any:
        return policy.get(f"{API_BASE}/{resource}", params={**params, "key": self.api_key})

    def _paginator(self, label: str, fetch) -> CursorPaginator:
        return CursorPaginator(fetch, label=label, cancel_event=self.cancel_event)

    def playlist_video_ids(self, playlist_id: str) -> Tuple[List[str], Optional[str]]:
        """Expand a playlist; returns the IDs found and the reason the scan stopped early, if any."""
        policy = self.policy(f"playlist {playlist_id}")
        print(f"  fetching videos from playlist {playlist_id}")

        def fetch(cursor: Optional[str]) -> Page:
            params = {"part": "snippet", "maxResults": PLAYLIST_PAGE_SIZE, "playlistId": playlist_id}
            if cursor:
                params["pageToken"] = cursor
            return parse_playlist_page(self._get(policy, "playlistItems", params))

        paginator = self._paginator(f"playlist {playlist_id}", fetch)
        video_ids = paginator.collect()
        print(f"  found {len(video_ids)} videos in playlist {playlist_id}")
        return video_ids, paginator.error or ("cancelled" if paginator.cancelled else None)

    def get_video_info(self, video_id: str, policy: RateLimitRetryPolicy) -> Dict[str, Any]:
        payload = _require_object(
            self._get(policy, "videos", {"part": "snippet", "id": video_id}), "videos"
        )
        items = _require_items(payload, "videos")
        if not items:
            raise NotFound(f"video {video_id} not found")
        snippet = _child(items[0], "snippet")
        return {
            "title": snippet.get("title") or "",
            "uploadDate": snippet.get("publishedAt"),
            "url": WATCH_URL.format(video_id=video_id),
        }

    def thread_replies(self, parent_id: str) -> Tuple[List[CommentNode], Optional[str]]:
        """All replies of one thread through comments.list (its own stream)."""
        policy = self.policy(f"replies {parent_id}")

        def fetch(cursor: Optional[str]) -> Page:
            params = {"part": "snippet", "parentId": parent_id, "maxResults": REPLY_PAGE_SIZE}
            if cursor:
                params["pageToken"] = cursor
            return parse_replies_page(self._get(policy, "comments", params))

        paginator = self._paginator(f"replies {parent_id}", fetch)
        replies = paginator.collect()
        return replies, paginator.error

    def _complete_thread(self, thread: ThreadItem, problems: List[str]) -> Tuple[CommentNode, Sequence[CommentNode]]:
        root, replies, total = thread
        if not self.fetch_all_replies or total <= len(replies):
            return root, replies
        fetched, error = self.thread_replies(root.id)
        if error:
            problems.append(f"replies of {root.id}: {error}")
        return root, fetched if len(fetched) >= len(replies) else replies

    def fetch_video(self, video_id: str) -> AggregatedEntity:
        """Video metadata plus every comment.

        A failed metadata lookup fails the video, and so does a comment stream
        the API rejected or kept rate limiting. Transport or parse failures in
        the comment stream keep the comments gathered so far with a warning.
        """
        print(f"  processing video {video_id}")
        fields = self.get_video_info(video_id, self.policy(f"video {video_id}"))
        policy = self.policy(f"comments {video_id}")

        def fetch(cursor: Optional[str]) -> Page:
            params = {
                "part": "snippet,replies",
                "videoId": video_id,
                "maxResults": COMMENT_PAGE_SIZE,
            }
            if cursor:
                params["pageToken"] = cursor
            return parse_comment_threads_page(self._get(policy, "commentThreads", params))

        paginator = self._paginator(f"comments {video_id}", fetch)
        problems: List[str] = []
        threads = []
        for page in paginator:
            threads.extend(self._complete_thread(thread, problems) for thread in page.items)
        if isinstance(paginator.exception, (RemoteRejected, RetryBudgetExhausted)):
            raise paginator.exception
        if paginator.error:
            problems.insert(0, f"comments: {paginator.error}")
        elif paginator.cancelled:
            problems.insert(0, "comments: cancelled")

        comments = flatten_threads(threads)
        print(f"  video {video_id}: {fields['title']!r} with {len(comments)} comments")
        return AggregatedEntity(
            id=video_id,
            kind="video",
            fields=fields,
            comments=tuple(comments),
            warning="; ".join(problems) or None,
        )


def comment_to_json(node: CommentNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "author": node.author,
        "text": node.text,
        "publishedAt": node.published_at,
        "parentId": node.parent_id,
    }


def video_to_json(entity: AggregatedEntity) -> Dict[str, Any]:
    return {
        "id": entity.id,
        "title": entity.fields.get("title"),
        "uploadDate": entity.fields.get("uploadDate"),
        "url": entity.fields.get("url"),
        "comments": [comment_to_json(node) for node in entity.comments],
    }


__all__ = [
    "ThreadItem",
    "validate_inputs",
    "comment_from_resource",
    "parse_playlist_page",
    "parse_comment_threads_page",
    "parse_replies_page",
    "YouTubeCollector",
    "comment_to_json",
    "video_to_json",
]
