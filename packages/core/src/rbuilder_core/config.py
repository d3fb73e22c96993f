"""Settings for the rbuilder file system.

Values come from constructor arguments first, then environment variables
(a .env file in the working directory is loaded by from_env()):

    RBUILDER_STORE_URL         memory:// (default) or file:///path/to/store.json
    RBUILDER_PACKAGE_PREFIX    Sub-tree agents may write to (default /Package)
    RBUILDER_RESOURCES_PREFIX  Sub-tree agents may read as context (default /Resources)
    RBUILDER_MAX_FILE_SIZE     Largest content agents may write (default 200000)
    RBUILDER_EXCLUDE_PATTERNS  Comma separated gitignore-style patterns agents may not touch
"""

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_STORE_URL = "memory://"
DEFAULT_MAX_FILE_SIZE = 200_000


class FileSystemSettings(BaseModel):
    """Configuration for the node store and the agent gateway."""

    store_url: str = DEFAULT_STORE_URL
    package_prefix: str = "/Package"
    resources_prefix: str = "/Resources"
    max_file_size: int = Field(DEFAULT_MAX_FILE_SIZE, gt=0)
    exclude_patterns: list[str] = Field(default_factory=list)

    @field_validator("package_prefix", "resources_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefixes are absolute folder paths without a trailing slash."""
        if not v.startswith("/") or v == "/":
            raise ValueError(f"Prefix '{v}' must be an absolute folder path like '/Package'")
        return v.rstrip("/")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "FileSystemSettings":
        """Build settings from environment variables (and .env)."""
        load_dotenv(env_file or find_dotenv(usecwd=True))

        values: dict = {}
        if os.getenv("RBUILDER_STORE_URL"):
            values["store_url"] = os.getenv("RBUILDER_STORE_URL")
        if os.getenv("RBUILDER_PACKAGE_PREFIX"):
            values["package_prefix"] = os.getenv("RBUILDER_PACKAGE_PREFIX")
        if os.getenv("RBUILDER_RESOURCES_PREFIX"):
            values["resources_prefix"] = os.getenv("RBUILDER_RESOURCES_PREFIX")
        if os.getenv("RBUILDER_MAX_FILE_SIZE"):
            values["max_file_size"] = int(os.getenv("RBUILDER_MAX_FILE_SIZE"))

        patterns = os.getenv("RBUILDER_EXCLUDE_PATTERNS", "")
        values["exclude_patterns"] = [p.strip() for p in patterns.split(",") if p.strip()]

        return cls(**values)
