"""Arena-indexed comment tree.

Comments arrive as a flat list of rows. The tree keeps every node in a
single list (the arena) and links parents to children by index, with an
``id -> index`` map for lookups, so building, patching and rendering are
all iterative and never recurse on user data.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Hashable, Iterable, Mapping, Optional

from taskflow.models.comment import MAX_THREAD_LEVEL

DELETED_COMMENT_CONTENT = "[Comment deleted]"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def thread_level_for(parent_level: Optional[int]) -> int:
    """Thread level of a new comment given its parent's level (None for roots)."""
    if parent_level is None:
        return 0
    return min(parent_level + 1, MAX_THREAD_LEVEL)


@dataclass
class CommentNode:
    id: Hashable
    parent_id: Optional[Hashable]
    data: dict[str, Any]
    children: list[int] = field(default_factory=list)


def _sort_key(row: Mapping[str, Any]) -> datetime:
    created = row.get("created_at")
    if isinstance(created, datetime):
        return created if created.tzinfo else created.replace(tzinfo=timezone.utc)
    if isinstance(created, str):
        parsed = datetime.fromisoformat(created.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return _EPOCH


class CommentTree:
    """Tree of comment rows keyed by id.

    Rows are mappings with at least ``id`` and ``parent_comment_id``.
    Rows whose parent is missing are dropped together with their replies.
    """

    def __init__(self) -> None:
        self.nodes: list[CommentNode] = []
        self.index: dict[Hashable, int] = {}
        self.roots: list[int] = []

    @classmethod
    def build(cls, rows: Iterable[Mapping[str, Any]]) -> "CommentTree":
        tree = cls()
        ordered = sorted(rows, key=_sort_key)

        # First pass: place every row in the arena
        for row in ordered:
            if row["id"] in tree.index:
                continue
            tree.index[row["id"]] = len(tree.nodes)
            tree.nodes.append(
                CommentNode(id=row["id"], parent_id=row.get("parent_comment_id"), data=dict(row))
            )

        # Second pass: link children to parents
        for position, node in enumerate(tree.nodes):
            tree._attach(position, node)
        return tree

    def _attach(self, position: int, node: CommentNode) -> bool:
        if node.parent_id is None:
            self.roots.append(position)
            return True
        parent_position = self.index.get(node.parent_id)
        if parent_position is None or parent_position == position:
            return False
        self.nodes[parent_position].children.append(position)
        return True

    def __len__(self) -> int:
        return sum(1 for _ in self._walk())

    def __contains__(self, comment_id: Hashable) -> bool:
        return self.find(comment_id) is not None

    def _walk(self) -> Iterable[tuple[int, int]]:
        """Yield ``(arena position, depth)`` in display order."""
        stack = [(position, 0) for position in reversed(self.roots)]
        while stack:
            position, depth = stack.pop()
            yield position, depth
            for child in reversed(self.nodes[position].children):
                stack.append((child, depth + 1))

    def reachable_ids(self) -> list[Hashable]:
        return [self.nodes[position].id for position, _ in self._walk()]

    def find(self, comment_id: Hashable) -> Optional[dict[str, Any]]:
        """Return the row for ``comment_id`` if it is part of the tree."""
        position = self.index.get(comment_id)
        if position is None:
            return None
        if position not in {p for p, _ in self._walk()}:
            return None
        return self.nodes[position].data

    def insert(self, row: Mapping[str, Any]) -> bool:
        """Add a new row; an existing id is treated as an update.

        Returns False when the row's parent is not in the tree.
        """
        if row["id"] in self.index:
            return self.update(row["id"], row)
        parent_id = row.get("parent_comment_id")
        if parent_id is not None and self.find(parent_id) is None:
            return False
        position = len(self.nodes)
        node = CommentNode(id=row["id"], parent_id=parent_id, data=dict(row))
        self.nodes.append(node)
        self.index[node.id] = position
        return self._attach(position, node)

    def update(self, comment_id: Hashable, changes: Mapping[str, Any]) -> bool:
        """Merge ``changes`` into a row in place. Structure never changes."""
        position = self.index.get(comment_id)
        if position is None:
            return False
        data = self.nodes[position].data
        for key, value in changes.items():
            if key in ("id", "parent_comment_id"):
                continue
            data[key] = value
        return True

    def soft_delete(self, comment_id: Hashable) -> bool:
        """Blank a row in place, keeping its replies attached."""
        return self.update(
            comment_id,
            {"content": DELETED_COMMENT_CONTENT, "is_deleted": True},
        )

    def to_list(self) -> list[dict[str, Any]]:
        """Render nested dicts with ``replies`` and a capped ``thread_level``."""
        rendered: dict[int, dict[str, Any]] = {}
        result: list[dict[str, Any]] = []
        for position, depth in self._walk():
            node = self.nodes[position]
            item = dict(node.data)
            item["thread_level"] = min(depth, MAX_THREAD_LEVEL)
            item["replies"] = []
            rendered[position] = item
            if node.parent_id is None:
                result.append(item)
            else:
                rendered[self.index[node.parent_id]]["replies"].append(item)
        return result


def build_comment_tree(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Build the nested comment list for display."""
    return CommentTree.build(rows).to_list()
