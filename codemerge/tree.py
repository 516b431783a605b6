"""
Token-weighted directory tree built from flat file records.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .loader import FileRecord


@dataclass
class TreeNode:
    path: str
    tokens: int = 0
    children: List["TreeNode"] = field(default_factory=list)
    _index: Dict[str, "TreeNode"] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def child(self, segment: str) -> "TreeNode":
        """Return the child for segment, creating it on first use."""
        node = self._index.get(segment)
        if node is None:
            node = TreeNode(path=segment)
            self.children.append(node)
            self._index[segment] = node
        return node

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "tokens": self.tokens,
            "children": [c.to_dict() for c in self.children],
        }


def split_path(path: str) -> List[str]:
    return [part for part in path.replace(os.sep, "/").split("/") if part]


def recount(root: TreeNode) -> int:
    """
    Post-order pass: every internal node becomes the sum of its children.

    Leaves keep the count assigned at insertion.
    """
    stack = [(root, False)]
    while stack:
        node, visited = stack.pop()
        if node.is_leaf:
            continue
        if visited:
            node.tokens = sum(c.tokens for c in node.children)
        else:
            stack.append((node, True))
            stack.extend((c, False) for c in node.children)
    return root.tokens


def build_tree(records: Iterable[FileRecord]) -> TreeNode:
    """Insert records segment by segment, then roll counts up to the root."""
    root = TreeNode(path="")

    for record in records:
        parts = split_path(record.path)
        if not parts:
            continue
        node = root
        for part in parts:
            node = node.child(part)
        node.tokens = record.tokens

    recount(root)
    return root


def render_tree(node: TreeNode, indent: str = "", is_last: bool = True) -> str:
    """Draw the tree with box characters; the synthetic root is not printed."""
    if node.path == "":
        return "".join(
            render_tree(child, "", i == len(node.children) - 1)
            for i, child in enumerate(node.children)
        )

    marker = "└── " if is_last else "├── "
    output = f"{indent}{marker}{node.path} ({node.tokens} tokens)\n"

    child_indent = indent + ("    " if is_last else "│   ")
    for i, child in enumerate(node.children):
        output += render_tree(child, child_indent, i == len(node.children) - 1)
    return output
