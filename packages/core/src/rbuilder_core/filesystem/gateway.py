"""Agent gateway - the only way an AI assistant may touch the file system.

This module wraps FileSystem with a narrower policy:
- Mutations (create, edit, duplicate) are restricted to the package sub-tree
- Optional gitignore-style exclude patterns (pathspec)
- Size limit on content an agent may write
- Read-only access to the resources sub-tree as context

Every call returns a ToolResult with a human-readable message instead of
raising, so the assistant can read why something failed and try again.
The core's own checks (duplicates, missing nodes, wrong type) still run
behind the policy; the gateway never bypasses them.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Optional

import pathspec
from pydantic_ai import Tool
from pydantic_ai.exceptions import ModelRetry
from pydantic_ai.toolsets import FunctionToolset

from rbuilder_core.config import FileSystemSettings
from rbuilder_core.filesystem.core import FileSystem
from rbuilder_core.filesystem.errors import (
    DuplicatePathError,
    FileSystemError,
    InvalidPathError,
    NotAFileError,
    NotAFolderError,
    NotFoundError,
    PolicyViolationError,
)
from rbuilder_core.filesystem.paths import is_descendant_or_self, replace_prefix, unique_sibling

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Outcome of a gateway call."""

    success: bool
    message: str
    path: Optional[str] = None  # Resulting path on success (e.g. the duplicate's path)

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


class PackageFileTools:
    """Policy wrapper around FileSystem for agent use.

    Example:
        fs = FileSystem(InMemoryNodeStore())
        await fs.initialize()
        tools = PackageFileTools(fs)

        # Works (inside /Package)
        await tools.create_node("/Package/R/hello.R", "file", "hello <- function() 1")

        # Rejected with a policy message, store untouched
        result = await tools.create_node("/Resources/evil.R", "file")
        assert not result.success
    """

    def __init__(
        self,
        fs: FileSystem,
        package_prefix: str = "/Package",
        resources_prefix: str = "/Resources",
        max_file_size: int = 200_000,
        exclude_patterns: Optional[list[str]] = None,
    ):
        """Initialize PackageFileTools.

        Args:
            fs: FileSystem to delegate to
            package_prefix: Folder whose contents agents may create/edit/duplicate
            resources_prefix: Folder whose files list_resource_files() returns
            max_file_size: Largest content (characters) an agent may write
            exclude_patterns: gitignore-style patterns (relative to "/") agents may not touch
        """
        self.fs = fs
        self.package_prefix = package_prefix.rstrip("/")
        self.resources_prefix = resources_prefix.rstrip("/")
        self.max_file_size = max_file_size
        self.exclude_patterns = exclude_patterns or []

        self.exclude_spec = None
        if self.exclude_patterns:
            self.exclude_spec = pathspec.PathSpec.from_lines("gitwildmatch", self.exclude_patterns)

    @classmethod
    def from_settings(cls, fs: FileSystem, settings: FileSystemSettings) -> "PackageFileTools":
        return cls(
            fs,
            package_prefix=settings.package_prefix,
            resources_prefix=settings.resources_prefix,
            max_file_size=settings.max_file_size,
            exclude_patterns=settings.exclude_patterns,
        )

    # ========================================================================
    # Policy
    # ========================================================================

    def _check_policy(self, path: str, action: str) -> None:
        """Reject paths outside the package sub-tree or matching an exclude pattern.

        Raises:
            PolicyViolationError: With the message to hand back to the agent
        """
        if not path.startswith(self.package_prefix + "/"):
            raise PolicyViolationError(
                f"Error: I can only {action} inside the {self.package_prefix} directory.", path
            )
        if self.exclude_spec and self.exclude_spec.match_file(path.lstrip("/")):
            raise PolicyViolationError(
                f"Error: Path '{path}' matches an excluded pattern and cannot be changed.", path
            )

    def _check_size(self, path: str, content: str) -> None:
        if len(content) > self.max_file_size:
            raise PolicyViolationError(
                f"Error: Content for '{path}' is too large ({len(content):,} characters). "
                f"Maximum size is {self.max_file_size:,} characters.",
                path,
            )

    def _reject(self, operation: str, path: str, message: str) -> ToolResult:
        logger.warning(f"[PackageFileTools] Rejected {operation} {path}: {message}")
        return ToolResult(success=False, message=message)

    # ========================================================================
    # Gateway operations
    # ========================================================================

    async def create_node(
        self, path: str, type: Literal["file", "folder"], content: str = ""
    ) -> ToolResult:
        """Create a file or folder inside the package sub-tree."""
        if type not in ("file", "folder"):
            return self._reject(
                "create_node", path, f"Error: Unknown type '{type}'. Use 'file' or 'folder'."
            )

        try:
            self._check_policy(path, "create files or folders")
            if type == "file":
                self._check_size(path, content)

            if await self.fs.get_node(path) is not None:
                raise DuplicatePathError(path)

            await self.fs.create_node(path, type, content if type == "file" else None)
            logger.info(f"[PackageFileTools] Created {type} {path}")
            return ToolResult(success=True, message=f"Successfully created {type} at {path}.", path=path)

        except PolicyViolationError as e:
            return self._reject("create_node", path, str(e))
        except DuplicatePathError:
            return self._reject(
                "create_node", path, f"Error: A file or folder already exists at path '{path}'."
            )
        except NotAFolderError as e:
            return self._reject(
                "create_node",
                path,
                f"Error: Cannot create '{path}' because '{e.path}' is a file, not a folder.",
            )
        except InvalidPathError as e:
            return self._reject("create_node", path, f"Error: {e}")
        except FileSystemError as e:
            logger.error(f"[PackageFileTools] Failed to create {type} at {path}: {e}")
            return ToolResult(
                success=False,
                message=f"An unexpected error occurred while creating {type} at {path}.",
            )

    async def edit_file(self, path: str, content: str) -> ToolResult:
        """Replace the full content of an existing file inside the package sub-tree."""
        try:
            self._check_policy(path, "edit files")
            self._check_size(path, content)

            node = await self.fs.get_node(path)
            if node is None:
                raise NotFoundError(path)
            if node.is_folder:
                raise NotAFileError(path)

            await self.fs.save_file_content(path, content)
            logger.info(f"[PackageFileTools] Edited {path} ({len(content):,} chars)")
            return ToolResult(success=True, message=f"Successfully edited file at {path}.", path=path)

        except PolicyViolationError as e:
            return self._reject("edit_file", path, str(e))
        except NotFoundError:
            return self._reject("edit_file", path, f"Error: File not found at path '{path}'.")
        except NotAFileError:
            return self._reject(
                "edit_file",
                path,
                f"Error: Cannot edit a folder. Path '{path}' points to a folder.",
            )
        except FileSystemError as e:
            logger.error(f"[PackageFileTools] Failed to edit file at {path}: {e}")
            return ToolResult(
                success=False,
                message=f"An unexpected error occurred while editing file at {path}.",
            )

    async def duplicate_node(self, path: str) -> ToolResult:
        """Copy a file or folder (with its contents) next to itself."""
        try:
            self._check_policy(path, "duplicate items")

            nodes = await self.fs.list_all()
            existing = {n.path for n in nodes}
            if path not in existing:
                raise NotFoundError(path)

            # Every path the copy would create must pass the same policy as create_node
            target = unique_sibling(path, existing)
            for node in nodes:
                if is_descendant_or_self(node.path, path):
                    self._check_policy(replace_prefix(node.path, path, target), "duplicate items")

            new_path = await self.fs.duplicate_node(path)
            logger.info(f"[PackageFileTools] Duplicated {path} -> {new_path}")
            return ToolResult(
                success=True,
                message=f"Successfully duplicated item from {path} to {new_path}.",
                path=new_path,
            )

        except PolicyViolationError as e:
            return self._reject("duplicate_node", path, str(e))
        except NotFoundError:
            return self._reject(
                "duplicate_node", path, f"Error: File or folder not found at path '{path}'."
            )
        except FileSystemError as e:
            logger.error(f"[PackageFileTools] Failed to duplicate item from {path}: {e}")
            return ToolResult(
                success=False,
                message=f"An unexpected error occurred while duplicating item from {path}.",
            )

    async def list_resource_files(self) -> list[dict[str, str]]:
        """Path and text content of every file under the resources sub-tree."""
        files = await self.fs.list_files(self.resources_prefix)
        return [{"path": node.path, "content": node.content or ""} for node in files]

    # ========================================================================
    # Agent integration
    # ========================================================================

    def get_instructions(self) -> str:
        """Describe the tools and the writable area for the agent's system prompt."""
        lines = [
            "# Project Files",
            "",
            f"You can change files only inside `{self.package_prefix}`.",
            f"Reference material uploaded by the user lives in `{self.resources_prefix}` (read-only).",
            "",
            "**Available tools:**",
            "- `create_node(path, type, content)`: Create a file or folder",
            "  - `type` is 'file' or 'folder'; paths are absolute, e.g. "
            f"`{self.package_prefix}/R/hello.R`",
            "- `edit_file(path, content)`: Replace the whole content of an existing file",
            f"  - Max content size: {self.max_file_size:,} characters",
            "- `duplicate_node(path)`: Copy a file or folder next to itself as '<name> (copy)'",
            "- `list_resource_files()`: Read every resource file",
        ]
        if self.exclude_patterns:
            lines.append(f"- Paths matching {', '.join(self.exclude_patterns)} cannot be changed")
        return "\n".join(lines)

    def get_toolset(self) -> FunctionToolset:
        """Expose the gateway operations as pydantic-ai tools.

        Each mutating tool returns the result message so the model sees
        exactly why a call failed.
        """

        async def create_node(path: str, type: Literal["file", "folder"], content: str = "") -> str:
            """Create a new file or folder in the R package.

            Args:
                path: Absolute path, e.g. "/Package/R/hello.R"
                type: "file" or "folder"
                content: Initial content for files
            """
            return (await self.create_node(path, type, content)).message

        async def edit_file(path: str, content: str) -> str:
            """Replace the entire content of an existing file in the R package.

            Args:
                path: Absolute path of the file to overwrite
                content: The complete new file content
            """
            return (await self.edit_file(path, content)).message

        async def duplicate_node(path: str) -> str:
            """Duplicate a file or folder; the copy is named "<name> (copy)".

            Args:
                path: Absolute path of the file or folder to copy
            """
            return (await self.duplicate_node(path)).message

        async def list_resource_files() -> list[dict[str, str]]:
            """List every resource file with its full text content."""
            try:
                return await self.list_resource_files()
            except FileSystemError as e:
                raise ModelRetry(f"Error reading resource files: {e}")

        return FunctionToolset(
            [
                Tool(create_node, takes_ctx=False),
                Tool(edit_file, takes_ctx=False),
                Tool(duplicate_node, takes_ctx=False),
                Tool(list_resource_files, takes_ctx=False),
            ]
        )
