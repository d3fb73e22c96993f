"""Archive walk for exporting the project.

Turns stored nodes into archive entries with relative paths (leading "/" stripped)
that a packaging routine can write straight into a zip. Writing the archive
itself is left to the caller.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Optional

from rbuilder_core.filesystem.models import Node
from rbuilder_core.filesystem.paths import is_strict_descendant


@dataclass(frozen=True)
class ArchiveEntry:
    """One folder or file entry of an exported archive."""

    path: str  # Relative, e.g. "Package/R/hello.R"
    is_dir: bool
    content: str = ""  # Empty for folders


def archive_entries(nodes: Iterable[Node], root: Optional[str] = None) -> Iterator[ArchiveEntry]:
    """Yield archive entries in path order.

    Args:
        nodes: Stored nodes (typically FileSystem.list_all())
        root: If given, only export nodes beneath this folder and make their
            paths relative to it (e.g. root="/Package/demo" exports "R/hello.R")

    Yields:
        ArchiveEntry per node; file entries carry content ("" if unset)
    """
    for node in sorted(nodes, key=lambda n: n.path):
        if root is None:
            relative = node.path.lstrip("/")
        elif is_strict_descendant(node.path, root):
            relative = node.path[len(root) + 1 :]
        else:
            continue

        if not relative:
            continue
        if node.is_folder:
            yield ArchiveEntry(path=relative, is_dir=True)
        else:
            yield ArchiveEntry(path=relative, is_dir=False, content=node.content or "")
