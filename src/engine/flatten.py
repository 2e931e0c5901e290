"""Turn comment/reply trees into flat lists with explicit parent references.

Only one level of nesting is represented: every reply points at the root of
its thread. A reply that claims a different parent (a reply to a reply) is
re-attached to the thread root and reported, so deeper trees lose their
inner structure but never point at a node outside their thread.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Sequence, Tuple

from .models import CommentNode

Thread = Tuple[CommentNode, Sequence[CommentNode]]


def flatten_threads(threads: Iterable[Thread]) -> List[CommentNode]:
    """Emit each root followed by its replies, in original order."""
    flat: List[CommentNode] = []
    for root, replies in threads:
        flat.append(replace(root, parent_id=None))
        for reply in replies or ():
            if reply.parent_id and reply.parent_id != root.id:
                print(
                    f"[warn] reply {reply.id} answers {reply.parent_id}; "
                    f"attached to thread root {root.id}"
                )
            flat.append(replace(reply, parent_id=root.id))
    return flat


def flatten_flat(nodes: Iterable[CommentNode]) -> List[CommentNode]:
    """Comments without replies: every node is top level."""
    return flatten_threads((node, ()) for node in nodes)


__all__ = ["Thread", "flatten_threads", "flatten_flat"]
