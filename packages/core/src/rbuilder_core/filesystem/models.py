"""Node records - the unit of storage - and their tree projection.

A Node is one flat record keyed by its absolute path. The persisted shape uses
camelCase (lastModified) so that stores written by other tooling stay readable:

    {"path": "/Package/R/hello.R", "type": "file", "content": "...", "size": 42,
     "lastModified": 1718000000000}

TreeNode is presentation-only. It is rebuilt from the flat records on every read
and never persisted.
"""

import time
from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

NodeType = Literal["file", "folder"]


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class Node(BaseModel):
    """A single stored file or folder, addressed by its full path."""

    model_config = ConfigDict(populate_by_name=True)

    path: str  # e.g., "/Package/DESCRIPTION"
    type: NodeType
    content: Optional[str] = None  # Files only; binary payloads are base64 text
    size: Optional[int] = None  # len(content); 0 for folders
    last_modified: int = Field(alias="lastModified")  # Epoch milliseconds

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    @classmethod
    def file(cls, path: str, content: str = "", last_modified: Optional[int] = None) -> "Node":
        """Build a file node with size derived from content."""
        return cls(
            path=path,
            type="file",
            content=content,
            size=len(content),
            last_modified=last_modified if last_modified is not None else now_ms(),
        )

    @classmethod
    def folder(cls, path: str, last_modified: Optional[int] = None) -> "Node":
        """Build a folder node (no content, size 0)."""
        return cls(
            path=path,
            type="folder",
            content=None,
            size=0,
            last_modified=last_modified if last_modified is not None else now_ms(),
        )

    def moved_to(self, new_path: str, last_modified: Optional[int] = None) -> "Node":
        """Copy of this node under a new path with a fresh timestamp.

        Type, content and size are carried over unchanged.
        """
        return self.model_copy(
            update={
                "path": new_path,
                "last_modified": last_modified if last_modified is not None else now_ms(),
            }
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted record format (camelCase, unset keys omitted)."""
        result: dict[str, Any] = {"path": self.path, "type": self.type}
        if self.content is not None:
            result["content"] = self.content
        if self.size is not None:
            result["size"] = self.size
        result["lastModified"] = self.last_modified
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Node":
        """Create from the persisted record format."""
        return cls(
            path=data["path"],
            type=data["type"],
            content=data.get("content"),
            size=data.get("size"),
            last_modified=data["lastModified"],
        )


@dataclass
class TreeNode:
    """Presentation node: a Node plus its name and ordered children."""

    name: str  # Last path segment
    path: str
    type: NodeType
    last_modified: int
    size: Optional[int] = None
    children: Optional[list["TreeNode"]] = None  # None for files

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "lastModified": self.last_modified,
        }
        if self.size is not None:
            result["size"] = self.size
        if self.children is not None:
            result["children"] = [child.to_dict() for child in self.children]
        return result
