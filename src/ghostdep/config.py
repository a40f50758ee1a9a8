"""Configuration management for ghostdep.

A run is driven by one immutable CheckConfig value. The CLI builds it from
environment variables (optionally read from a .env file) plus command-line
overrides; library callers construct it directly.
"""
import os
from dataclasses import dataclass, replace
from enum import IntEnum
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple, Union

from dotenv import dotenv_values, find_dotenv

__version__ = "1.2.0"


class LogLevel(IntEnum):
    """Verbosity levels accepted by the engine."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Accept a LogLevel, its integer value, or its name in any case.

        Raises:
            ValueError: If the value names no level
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)

        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None


# A manifest source maps a source file to extra package.json paths governing it
ManifestSource = Callable[[Path], Iterable[Union[str, Path]]]


@dataclass(frozen=True)
class CheckConfig:
    """Settings for one ghost-dependency run.

    Attributes:
        exclude_alias: Path-alias roots (e.g. '@', '~', '@components') whose
            specifiers are internal and never reported
        special_dep_functions: Extra manifest sources consulted per file in
            monorepo mode
        log_level: Minimum level emitted by the ghostdep logger
        encoding: Text encoding used to read source files
        name: Label shown next to the progress bar
        max_workers: Upper bound on concurrently analyzed files
        export: Write ghost-dependencies.json when the report is non-empty
        output_dir: Directory for the exported report (cwd when None)
    """
    exclude_alias: Tuple[str, ...] = ()
    special_dep_functions: Tuple[ManifestSource, ...] = ()
    log_level: LogLevel = LogLevel.INFO
    encoding: str = "utf-8"
    name: str = "Checking files"
    max_workers: int = 8
    export: bool = True
    output_dir: Optional[Path] = None

    def __post_init__(self):
        # Lists are accepted for convenience but stored as tuples
        object.__setattr__(self, "exclude_alias", tuple(self.exclude_alias))
        object.__setattr__(self, "special_dep_functions", tuple(self.special_dep_functions))
        object.__setattr__(self, "log_level", LogLevel.parse(self.log_level))
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

    def with_overrides(self, **overrides) -> "CheckConfig":
        """Return a copy with the given fields replaced (None values are ignored)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def _split_aliases(raw: str) -> Tuple[str, ...]:
    return tuple(alias.strip() for alias in raw.split(",") if alias.strip())


def load_config(env_file: Optional[Union[str, Path]] = None, **overrides) -> CheckConfig:
    """Build a CheckConfig from the environment, then apply explicit overrides.

    Priority:
    1. Keyword overrides (non-None values)
    2. GHOSTDEP_* environment variables
    3. GHOSTDEP_* entries of a .env file
    4. CheckConfig defaults

    The .env file is read, never exported, so os.environ is left untouched.

    Args:
        env_file: .env file to load; searched upward from cwd when omitted
        **overrides: CheckConfig fields

    Returns:
        Frozen configuration for one run
    """
    dotenv_path = env_file if env_file is not None else find_dotenv(usecwd=True)
    file_values = dotenv_values(dotenv_path) if dotenv_path else {}

    def lookup(name: str) -> Optional[str]:
        return os.getenv(name) or file_values.get(name)

    from_env = {}
    if lookup("GHOSTDEP_LOG_LEVEL"):
        from_env["log_level"] = LogLevel.parse(lookup("GHOSTDEP_LOG_LEVEL"))
    if lookup("GHOSTDEP_ENCODING"):
        from_env["encoding"] = lookup("GHOSTDEP_ENCODING")
    if lookup("GHOSTDEP_MAX_WORKERS"):
        from_env["max_workers"] = int(lookup("GHOSTDEP_MAX_WORKERS"))
    if lookup("GHOSTDEP_EXCLUDE_ALIAS"):
        from_env["exclude_alias"] = _split_aliases(lookup("GHOSTDEP_EXCLUDE_ALIAS"))

    return CheckConfig(**from_env).with_overrides(**overrides)
