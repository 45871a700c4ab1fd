"""Configuration management for reposync."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any

from dotenv import find_dotenv, load_dotenv

from .platform import get_platform_specific_defaults, normalize_path
from .git_sync.utils import SyncRequest


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
REMOTE_URL_PREFIXES = ("git@", "ssh://", "https://", "http://", "file://")

_DEFAULTS = get_platform_specific_defaults()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Configuration for one reposync run, with validation and defaults."""

    # Repository
    remote_url: str = _DEFAULTS['remote_url']
    branch: str = _DEFAULTS['branch']
    target_path: Path = field(default_factory=lambda: _DEFAULTS['target_path'])
    credential_path: Path = field(default_factory=lambda: _DEFAULTS['credential_path'])
    hard_reset: bool = False

    # Logging
    log_level: str = _DEFAULTS['log_level']

    # Presentation and locking (CLI wrapper only)
    pause_on_error: bool = _DEFAULTS['pause_on_error']
    use_lock: bool = True
    lock_timeout: float = _DEFAULTS['lock_timeout']

    def __post_init__(self):
        """Validate configuration after initialization."""
        # Convert string paths to Path objects and normalize (expand ~ and resolve)
        self.target_path = normalize_path(self.target_path)
        self.credential_path = normalize_path(self.credential_path)

        if not self.remote_url or not self.remote_url.strip():
            raise ValueError("remote_url must not be empty")
        self.remote_url = self.remote_url.strip()

        if not self.branch or not self.branch.strip():
            raise ValueError("branch must not be empty")
        self.branch = self.branch.strip()

        # Validate log level
        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        # Validate lock timeout
        if self.lock_timeout < 0:
            raise ValueError("lock_timeout must be non-negative")

    @property
    def lock_file_path(self) -> Path:
        """Advisory lock file, kept beside the target so clones see an empty directory."""
        return self.target_path.parent / f".{self.target_path.name}.reposync.lock"

    def to_request(self) -> SyncRequest:
        """Build the SyncRequest consumed by the synchronizer."""
        return SyncRequest(
            remote_url=self.remote_url,
            branch=self.branch,
            target_path=self.target_path,
            credential_path=self.credential_path,
            force=self.hard_reset
        )


def load_configuration(overrides: Optional[Dict[str, Any]] = None) -> Config:
    """
    Load configuration from environment variables with platform-specific defaults.

    Values in ``overrides`` (typically parsed command-line options) win over
    the environment; ``None`` entries are ignored so unset options fall through.
    A ``.env`` file found from the working directory fills in variables that
    are not already set.
    """
    load_dotenv(find_dotenv(usecwd=True))

    try:
        values: Dict[str, Any] = {
            'remote_url': os.getenv("REPOSYNC_REMOTE_URL", _DEFAULTS['remote_url']),
            'branch': os.getenv("REPOSYNC_BRANCH", _DEFAULTS['branch']),
            'target_path': Path(os.getenv("REPOSYNC_TARGET_PATH", str(_DEFAULTS['target_path']))),
            'credential_path': Path(os.getenv("REPOSYNC_CREDENTIAL_PATH", str(_DEFAULTS['credential_path']))),
            'hard_reset': _env_flag("REPOSYNC_HARD_RESET", False),
            'log_level': os.getenv("REPOSYNC_LOG_LEVEL", _DEFAULTS['log_level']).upper(),
            'pause_on_error': not _env_flag("REPOSYNC_NO_PAUSE", not _DEFAULTS['pause_on_error']),
            'use_lock': not _env_flag("REPOSYNC_NO_LOCK", False),
            'lock_timeout': float(os.getenv("REPOSYNC_LOCK_TIMEOUT", str(_DEFAULTS['lock_timeout']))),
        }

        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value

        return Config(**values)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    if not config.remote_url.startswith(REMOTE_URL_PREFIXES) and not Path(config.remote_url).exists():
        errors.append(f"WARNING: Remote URL may be invalid: {config.remote_url}")

    if not config.remote_url.startswith(("git@", "ssh://")):
        errors.append(
            f"WARNING: Remote URL does not use ssh, the deploy key will not be used: {config.remote_url}"
        )

    if not config.credential_path.is_file():
        errors.append(f"WARNING: Credential file does not exist yet: {config.credential_path}")

    if config.target_path.exists() and not config.target_path.is_dir():
        errors.append(f"ERROR: Target path exists and is not a directory: {config.target_path}")

    if config.hard_reset:
        logging.getLogger('reposync.config').debug("Hard reset requested; local changes will be discarded")

    return errors
