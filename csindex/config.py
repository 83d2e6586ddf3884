"""Configuration management with Pydantic settings and index-file discovery."""

import os
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from csindex.ingest.filter import DEFAULT_FILE_TYPES
from csindex.utils.paths import find_upward

DEFAULT_INDEX_FILENAME = ".csearchindex"
INDEX_ENV_VAR = "CSEARCHINDEX"

# The index writer refuses files above 1 GiB or with lines over 2000 bytes.
DEFAULT_MAX_FILE_SIZE = 1 << 30
DEFAULT_MAX_LINE_LENGTH = 2000


class Settings(BaseSettings):
    """csindex configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="CSINDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    index_file: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(INDEX_ENV_VAR, "CSINDEX_INDEX_FILE"),
        description="Index file used when no -d flag or .csearchindex is found",
    )

    file_types: str = Field(
        default=DEFAULT_FILE_TYPES,
        description="Pipe-separated extension allow-list for indexed files",
    )

    verbose: bool = Field(
        default=False,
        description="Log every file the index writer rejects",
    )

    max_file_size: int = Field(
        default=DEFAULT_MAX_FILE_SIZE,
        ge=1,
        description="Files larger than this many bytes are not indexed",
    )

    max_line_length: int = Field(
        default=DEFAULT_MAX_LINE_LENGTH,
        ge=1,
        description="Files containing a longer line (in bytes) are not indexed",
    )

    lock_timeout: float = Field(
        default=0.0,
        ge=0.0,
        description="Seconds to wait for a concurrent run to release the index lock",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level for progress and diagnostics on stderr",
    )


class IndexerConfig(BaseModel):
    """Immutable per-run configuration handed to every pipeline component."""

    model_config = ConfigDict(frozen=True)

    index_path: Path
    file_types: str = DEFAULT_FILE_TYPES
    reset: bool = False
    verbose: bool = False
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, ge=1)
    max_line_length: int = Field(default=DEFAULT_MAX_LINE_LENGTH, ge=1)
    lock_timeout: float = Field(default=0.0, ge=0.0)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        index_path: Path,
        reset: bool = False,
        verbose: bool | None = None,
        file_types: str | None = None,
    ) -> "IndexerConfig":
        """Freeze ``settings`` plus command-line overrides into a run config."""
        return cls(
            index_path=index_path,
            file_types=file_types if file_types is not None else settings.file_types,
            reset=reset,
            verbose=settings.verbose if verbose is None else verbose,
            max_file_size=settings.max_file_size,
            max_line_length=settings.max_line_length,
            lock_timeout=settings.lock_timeout,
        )

    @property
    def lock_path(self) -> Path:
        """Sibling lock file guarding writes to ``index_path``."""
        return self.index_path.with_name(f"{self.index_path.name}.lock")


def resolve_index_file(
    explicit: Path | None,
    *,
    settings: "Settings | None" = None,
    for_write: bool = False,
    cwd: Path | None = None,
) -> Path:
    """Locate the master index file.

    Args:
        explicit: Value of the ``-d`` flag; a directory means
            ``<dir>/.csearchindex``.
        settings: Settings providing the ``$CSEARCHINDEX`` override.
        for_write: True for commands that build an index. Those default to
            ``./.csearchindex`` even when it does not exist yet.
        cwd: Starting directory (defaults to the process working directory).

    Returns:
        Absolute path of the index file (which may not exist).
    """
    if explicit is not None:
        candidate = Path(explicit).expanduser()
        if candidate.is_dir():
            candidate = candidate / DEFAULT_INDEX_FILENAME
        return Path(os.path.abspath(candidate))

    start = Path(cwd) if cwd is not None else Path.cwd()
    local = start / DEFAULT_INDEX_FILENAME
    if for_write or local.exists():
        return Path(os.path.abspath(local))

    discovered = find_upward(DEFAULT_INDEX_FILENAME, start)
    if discovered is not None:
        return discovered

    active_settings = settings or get_settings()
    if active_settings.index_file is not None:
        return Path(os.path.abspath(active_settings.index_file.expanduser()))

    return Path.home() / DEFAULT_INDEX_FILENAME


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
