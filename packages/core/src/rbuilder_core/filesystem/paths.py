"""Path utilities - pure string functions, no I/O.

Paths are absolute and "/"-delimited ("/Package/R/hello.R"). The store keeps a
flat path -> node map, so every hierarchy question (parent, descendants, subtree)
is answered here by string inspection of the keys.
"""

from collections.abc import Collection

from rbuilder_core.filesystem.errors import InvalidPathError

ROOT = "/"
SEPARATOR = "/"


def segments(path: str) -> list[str]:
    """Split a path into its non-empty segments.

    Example:
        segments("/a//b/") -> ["a", "b"]
    """
    return [part for part in path.split(SEPARATOR) if part]


def parent_of(path: str) -> str:
    """Everything before the last separator; "/" for top-level paths."""
    parent = path[: path.rfind(SEPARATOR)]
    return parent or ROOT


def name_of(path: str) -> str:
    """Last segment of a path ("/" for the root itself)."""
    parts = segments(path)
    return parts[-1] if parts else ROOT


def join(parent: str, name: str) -> str:
    if parent == ROOT:
        return ROOT + name
    return parent + SEPARATOR + name


def is_descendant_or_self(candidate: str, ancestor: str) -> bool:
    """True if candidate is ancestor itself or lies anywhere beneath it."""
    return candidate == ancestor or candidate.startswith(ancestor + SEPARATOR)


def is_strict_descendant(candidate: str, ancestor: str) -> bool:
    return candidate.startswith(ancestor + SEPARATOR)


def replace_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """Re-root path from old_prefix onto new_prefix.

    Only the leading prefix is replaced; a later occurrence of the same text
    inside the path is left alone.
    """
    if not is_descendant_or_self(path, old_prefix):
        raise ValueError(f"Path '{path}' is not under '{old_prefix}'")
    return new_prefix + path[len(old_prefix) :]


def validate_path(path: str) -> str:
    """Check that path is a well-formed absolute node path.

    Returns:
        The path unchanged

    Raises:
        InvalidPathError: If the path is relative, is the bare root, ends with
            a separator, or contains empty, "." or ".." segments
    """
    if not path.startswith(ROOT):
        raise InvalidPathError(f"Path '{path}' must be absolute (start with '/')", path)
    if path == ROOT:
        raise InvalidPathError("The root '/' cannot be used as a node path", path)
    if path.endswith(SEPARATOR):
        raise InvalidPathError(f"Path '{path}' must not end with '/'", path)

    for part in path[1:].split(SEPARATOR):
        if not part.strip():
            raise InvalidPathError(f"Path '{path}' contains an empty segment", path)
        if part in (".", ".."):
            raise InvalidPathError(f"Path '{path}' contains a relative segment '{part}'", path)
    return path


def validate_name(name: str) -> str:
    """Check that name is usable as a single path segment."""
    if not name.strip():
        raise InvalidPathError("Name must not be empty")
    if SEPARATOR in name:
        raise InvalidPathError(f"Name '{name}' must not contain '/'")
    if name in (".", ".."):
        raise InvalidPathError(f"Name '{name}' is reserved")
    return name


def _with_suffix(directory: str, base_name: str, suffix: str) -> str:
    # The suffix goes before the last extension: "report.R" -> "report (copy).R"
    if "." in base_name:
        dot = base_name.rfind(".")
        return f"{directory}/{base_name[:dot]}{suffix}{base_name[dot:]}"
    return f"{directory}/{base_name}{suffix}"


def unique_sibling(desired_path: str, existing_paths: Collection[str]) -> str:
    """Return desired_path, or the first free " (copy)" variant of it.

    Search order: "name (copy).ext", "name (copy 2).ext", "name (copy 3).ext", ...

    Example:
        unique_sibling("/a/report.R", {"/a/report.R"}) -> "/a/report (copy).R"
        unique_sibling("/a/data", {"/a/data", "/a/data (copy)"}) -> "/a/data (copy 2)"
    """
    taken = existing_paths if isinstance(existing_paths, (set, frozenset)) else set(existing_paths)
    if desired_path not in taken:
        return desired_path

    sep = desired_path.rfind(SEPARATOR)
    directory = desired_path[:sep]
    base_name = desired_path[sep + 1 :]

    candidate = _with_suffix(directory, base_name, " (copy)")
    count = 2
    while candidate in taken:
        candidate = _with_suffix(directory, base_name, f" (copy {count})")
        count += 1
    return candidate


def numbered_sibling(parent: str, stem: str, extension: str, taken: Collection[str]) -> str:
    """First free path among "stem.ext", "stem-1.ext", "stem-2.ext", ... under parent.

    Used for the placeholder names of new files ("Untitled.R") and folders ("NewFolder").
    """
    taken_set = taken if isinstance(taken, (set, frozenset)) else set(taken)
    candidate = join(parent, f"{stem}{extension}")
    count = 1
    while candidate in taken_set:
        candidate = join(parent, f"{stem}-{count}{extension}")
        count += 1
    return candidate
