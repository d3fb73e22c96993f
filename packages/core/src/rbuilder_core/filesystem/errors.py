"""Error taxonomy for the virtual file system.

Every structural violation is raised as a subclass of FileSystemError so callers
can tell "the tree said no" apart from "the disk said no" (StorageFailure).
The gateway layer turns these into human-readable messages for agents.
"""

from typing import Optional


class FileSystemError(Exception):
    """Base class for all file system errors.

    Carries the path the operation was targeting when there is one.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class NotFoundError(FileSystemError):
    """Raised when the target path does not exist."""

    def __init__(self, path: str):
        super().__init__(f"No file or folder at path '{path}'", path)


class NotAFileError(FileSystemError):
    """Raised when a file operation targets a folder."""

    def __init__(self, path: str):
        super().__init__(f"Path '{path}' is a folder, not a file", path)


class NotAFolderError(FileSystemError):
    """Raised when a folder operation targets a file."""

    def __init__(self, path: str):
        super().__init__(f"Path '{path}' is a file, not a folder", path)


class DuplicatePathError(FileSystemError):
    """Raised when a create/rename/duplicate target is already taken."""

    def __init__(self, path: str):
        super().__init__(f"A file or folder already exists at path '{path}'", path)


class InvalidPathError(FileSystemError):
    """Raised for malformed paths (relative, empty segments, bad names)."""

    pass


class PolicyViolationError(FileSystemError):
    """Raised by the gateway when a path falls outside what an agent may touch.

    Never raised by the core itself.
    """

    pass


class StorageFailure(FileSystemError):
    """Raised when the backing store fails to read or write.

    Backends chain the original exception (raise ... from e).
    """

    pass
