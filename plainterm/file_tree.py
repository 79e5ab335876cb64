# plainterm/file_tree.py
#
# Data model behind the file panel. Ownership runs strictly from the root down
# through `children`; a node's parent is a weak reference used only to find
# the list a node must be removed from. It never keeps a subtree alive.

import os
import logging
import weakref
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


class FileNode:
    def __init__(self, name: str, path: str, is_folder: bool, parent: Optional["FileNode"] = None):
        self.name = name
        self.path = path
        self.is_folder = is_folder
        self.children: Optional[List["FileNode"]] = [] if is_folder else None
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    @property
    def parent(self) -> Optional["FileNode"]:
        return self._parent_ref() if self._parent_ref is not None else None

    def add_child(self, child: "FileNode"):
        if self.children is None:
            raise ValueError(f"'{self.path}' is not a folder.")
        child._parent_ref = weakref.ref(self)
        self.children.append(child)

    def remove(self) -> bool:
        """Detaches this node from its parent's listing. Returns False if it had none."""
        parent = self.parent
        self._parent_ref = None
        if parent is None or not parent.children or self not in parent.children:
            return False
        parent.children.remove(self)
        return True

    def walk(self, depth: int = 0) -> Iterator[tuple]:
        """Yields (depth, node) for this node and its descendants, depth first."""
        yield depth, self
        for child in self.children or []:
            yield from child.walk(depth + 1)

    def __repr__(self):
        return f"FileNode({self.path!r}, is_folder={self.is_folder})"


def _load_children(node: FileNode, depth_left: Optional[int]):
    try:
        with os.scandir(node.path) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        logger.error(f"Error reading directory {node.path}: {e}")
        return

    for entry in entries:
        try:
            is_folder = entry.is_dir()
            is_link = entry.is_symlink()
        except OSError:
            is_folder, is_link = False, False
        child = FileNode(entry.name, entry.path, is_folder)
        node.add_child(child)
        # Symlinked folders are listed but not entered; they can form cycles.
        if is_folder and not is_link and (depth_left is None or depth_left > 1):
            _load_children(child, None if depth_left is None else depth_left - 1)


def load_tree(path: str, max_depth: Optional[int] = None) -> FileNode:
    """Builds the tree rooted at `path`, children sorted by name.

    `max_depth` limits how many folder levels below the root are read; None
    reads everything. An unreadable folder is logged and left empty.
    """
    path = os.path.abspath(path)
    root = FileNode(os.path.basename(path) or path, path, os.path.isdir(path))
    if root.is_folder and (max_depth is None or max_depth > 0):
        _load_children(root, max_depth)
    return root


def render_tree(root: FileNode) -> str:
    """Indented text listing for the file panel; folders end in '/'."""
    lines = []
    for depth, node in root.walk():
        suffix = "/" if node.is_folder else ""
        lines.append(f"{'  ' * depth}{node.name}{suffix}")
    return "\n".join(lines)
