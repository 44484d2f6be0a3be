"""Configuration management using Pydantic settings with optional file persistence."""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Paths ---

APP_NAME = "snaxel-query"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/snaxel-query)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / ".config")).expanduser()
    else:
        base = Path("~/.config").expanduser()

    path = base / APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_default_results_dir() -> Path:
    """Get the default directory for saving query results."""
    base = Path("~/Documents").expanduser()
    if not base.exists():
        base = Path.home()

    return base / "snaxel-results"


CONFIG_FILE = get_config_dir() / "config.json"


def load_config_file() -> dict[str, Any]:
    """Load settings from the JSON config file if it exists."""
    if not CONFIG_FILE.exists():
        return {}

    try:
        text = CONFIG_FILE.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        return json.loads(text)
    except (OSError, json.JSONDecodeError):
        return {}


def save_config_file(config_data: dict[str, Any]) -> None:
    """Save settings to the JSON config file."""
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(config_data, indent=2), encoding="utf-8")


DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"

DEFAULT_BLOCKED_RESOURCES = ["image", "stylesheet", "font", "media"]


class BrowserSettings(BaseSettings):
    """Browser and page rendering configuration."""

    model_config = SettingsConfigDict(env_prefix="SNAXEL_BROWSER_")

    headless: bool = Field(default=True)
    proxy_server: Optional[str] = Field(default=None, description="Proxy server URL (e.g., http://host:8080)")
    proxy_bypass: Optional[str] = Field(default=None, description="Comma-separated hosts to bypass proxy")
    timeout: float = Field(default=30.0, gt=0, description="Per-page load timeout in seconds")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    viewport_width: int = Field(default=1920, gt=0)
    viewport_height: int = Field(default=1080, gt=0)
    block_resources: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_RESOURCES),
        description="Resource types not loaded while rendering (image, stylesheet, font, media)",
    )


class FanoutSettings(BaseSettings):
    """Concurrency and retry configuration for source queries."""

    model_config = SettingsConfigDict(env_prefix="SNAXEL_FANOUT_")

    concurrency: int = Field(default=3, gt=0, description="Maximum number of sources fetched at once")
    max_retries: int = Field(default=3, gt=0, description="Total attempts per source fetch")
    retry_delay: float = Field(default=1.0, ge=0, description="Base backoff delay in seconds, doubled per retry")
    max_retry_delay: Optional[float] = Field(default=None, ge=0, description="Upper bound for a single backoff delay (unbounded when unset)")


class OutputSettings(BaseSettings):
    """Logging and result output configuration."""

    model_config = SettingsConfigDict(env_prefix="SNAXEL_OUTPUT_")

    logging_level: str = Field(default="INFO")
    results_dir: Optional[str] = Field(default=None, description="Directory to save query results")


class AppSettings(BaseSettings):
    """Root application settings.

    Priority: Environment Variables > Config File > Defaults
    """

    model_config = SettingsConfigDict(env_prefix="SNAXEL_", extra="ignore")

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    fanout: FanoutSettings = Field(default_factory=FanoutSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)

    def save(self) -> Path:
        """Save current configuration to file."""
        save_config_file(self.model_dump(mode="json", exclude_none=True))
        return CONFIG_FILE

    def get_results_dir(self) -> Path:
        """Get the results directory, creating if needed."""
        if self.output.results_dir:
            path = Path(self.output.results_dir).expanduser()
        else:
            path = get_default_results_dir()
        path.mkdir(parents=True, exist_ok=True)
        return path


def _load_settings() -> AppSettings:
    """Load settings with file config as base, env vars overlay."""
    file_data = load_config_file()
    # Nested sections are built from their own env prefix, then file values fill the gaps
    sections = {
        "browser": BrowserSettings,
        "fanout": FanoutSettings,
        "output": OutputSettings,
    }
    kwargs: dict[str, Any] = {}
    for name, section_cls in sections.items():
        section_data = file_data.get(name) or {}
        env_data = section_cls().model_dump(exclude_unset=True)
        kwargs[name] = section_cls(**{**section_data, **env_data})
    return AppSettings(**kwargs)


settings = _load_settings()
