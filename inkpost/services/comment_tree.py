from typing import Dict, Iterable, List, Optional, Union

from inkpost.schemas.comment import CommentNode, CommentOut, CommentRecord, avatar_url
from inkpost.services.sanitizer import sanitize_html
from inkpost.utils.log import app_logger


def _closes_cycle(node_id: str, parent_id: str, parents: Dict[str, Optional[str]]) -> bool:
    """True if `node_id` is `parent_id` or one of its ancestors."""
    seen = set()
    current: Optional[str] = parent_id
    while current is not None:
        if current == node_id:
            return True
        if current in seen:
            # a loop further up that does not involve node_id; it gets broken when one of its members is placed
            return False
        seen.add(current)
        current = parents.get(current)
    return False


def build_comment_tree(
    records: Iterable[Union[CommentRecord, dict]],
    detect_cycles: bool = True,
) -> List[CommentNode]:
    """Nest a flat, chronologically sorted comment list into reply trees.

    A record whose parent is missing from the list becomes a root. Reply lists
    keep the input order. With `detect_cycles`, a record that would become its
    own ancestor is placed as a root instead, so every record shows up exactly
    once in a finite forest.
    """
    flat = [r if isinstance(r, CommentRecord) else CommentRecord.model_validate(r) for r in records]

    nodes: Dict[str, CommentNode] = {}
    for record in flat:
        if record.id in nodes:
            app_logger.warning("comments.duplicate_id", comment_id=record.id)
            continue
        nodes[record.id] = CommentNode(**record.model_dump())

    # effective parent of each node once placed; promoted records get None
    parents: Dict[str, Optional[str]] = {
        cid: (node.parent_id if node.parent_id in nodes else None) for cid, node in nodes.items()
    }

    roots: List[CommentNode] = []
    placed = set()
    for record in flat:
        if record.id in placed:
            continue
        placed.add(record.id)
        node = nodes[record.id]

        parent = nodes.get(record.parent_id) if record.parent_id else None
        if parent is not None and detect_cycles and _closes_cycle(record.id, parent.id, parents):
            app_logger.warning("comments.cycle_broken", comment_id=record.id, parent_id=record.parent_id)
            parents[record.id] = None
            parent = None

        if parent is not None:
            parent.replies.append(node)
        else:
            roots.append(node)
    return roots


def count_nodes(roots: List[CommentNode]) -> int:
    total = 0
    stack = list(roots)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.replies)
    return total


def render_comment(node: CommentNode) -> CommentOut:
    """view model of one node and its replies; content is sanitized, email is never exposed"""
    return CommentOut(
        id=node.id,
        parent_id=node.parent_id,
        content=sanitize_html(node.content),
        author_name=node.author_name,
        avatar_url=avatar_url(node.author_name),
        created_at=node.created_at,
        replies=[render_comment(reply) for reply in node.replies],
    )
