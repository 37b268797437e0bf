"""
Run configuration.

Credentials come from a .env file (python-dotenv) or the process
environment; every tunable has a default here and can be overridden from
the command line. Components receive a Settings instance at construction
instead of reading module globals.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PACKAGE_DIR = Path(__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent

# Each context maps to the env vars holding its space and environment ids.
CONTEXTS = {
    "uk": ("SPACE_ID_EN_GB", "ENV_EN_GB"),
    "de": ("SPACE_ID_DE_DE", "ENV_DE_DE"),
    "fr": ("SPACE_ID_FR_FR", "ENV_FR_FR"),
    "mobile-app": ("MOBILE_APP_SPACE_ID", "MOBILE_APP_ENV"),
}
DEFAULT_CONTEXT = "fr"


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


# =============================================================================
# CREDENTIAL LOADING
# =============================================================================


def load_env(env_path: Optional[Path] = None) -> Optional[Path]:
    """Load environment variables from the first .env file found."""
    candidates = [env_path] if env_path else [
        Path.cwd() / ".env",
        PROJECT_ROOT / ".env",
    ]
    for candidate in candidates:
        if candidate and candidate.exists():
            load_dotenv(candidate)
            return candidate
    return None


# =============================================================================
# SETTINGS
# =============================================================================


@dataclass
class Settings:
    access_token: Optional[str] = None
    space_id: Optional[str] = None
    environment_id: Optional[str] = None
    context: str = DEFAULT_CONTEXT

    # Retry / pacing
    retry_attempts: int = 7
    retry_base_delay: float = 2.0
    retry_max_delay: float = 30.0
    page_delay: float = 0.5
    write_delay: float = 1.0
    publish_wait: float = 5.0
    request_timeout: float = 30.0

    # Run shape
    batch_size: int = 100
    max_entries: int = 4000
    content_type: Optional[str] = None
    dry_run: bool = False

    deletion_rules_path: Optional[Path] = None
    report_dir: Path = field(default_factory=Path.cwd)
    log_level: str = "INFO"

    @classmethod
    def load(cls, context: str = DEFAULT_CONTEXT, overrides: Optional[dict] = None) -> "Settings":
        """
        Build settings with priority:
        1. Explicit overrides, e.g. CLI flags (highest)
        2. Environment variables / .env
        3. Defaults (lowest)
        """
        if context not in CONTEXTS:
            raise ConfigError(f"Unknown context '{context}'. Choose from: {', '.join(CONTEXTS)}")

        space_var, env_var = CONTEXTS[context]
        settings = cls(
            access_token=os.getenv("CONTENTFUL_MANAGEMENT_TOKEN"),
            space_id=os.getenv(space_var),
            environment_id=os.getenv(env_var),
            context=context,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

        known = {f.name for f in fields(cls)}
        for key, value in (overrides or {}).items():
            if key not in known:
                raise ConfigError(f"Unknown setting: {key}")
            if value is not None:
                setattr(settings, key, value)

        return settings

    def validate(self) -> list[str]:
        """Returns list of validation errors, empty if valid."""
        errors = []
        space_var, env_var = CONTEXTS.get(self.context, ("SPACE_ID", "ENVIRONMENT_ID"))

        if not self.access_token:
            errors.append("CONTENTFUL_MANAGEMENT_TOKEN environment variable is required")
        if not self.space_id:
            errors.append(f"{space_var} (or --space-id) is required")
        if not self.environment_id:
            errors.append(f"{env_var} (or --env-id) is required")
        if self.batch_size < 1 or self.batch_size > 1000:
            errors.append(f"batch size must be between 1 and 1000, got {self.batch_size}")
        if self.max_entries < 1:
            errors.append(f"max entries must be positive, got {self.max_entries}")
        if self.retry_attempts < 1:
            errors.append(f"retry attempts must be positive, got {self.retry_attempts}")

        return errors

    def retry_options(self) -> dict:
        """Keyword arguments for with_retry."""
        return {
            "max_attempts": self.retry_attempts,
            "base_delay": self.retry_base_delay,
            "max_delay": self.retry_max_delay,
        }
