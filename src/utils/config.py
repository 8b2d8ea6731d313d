"""
Configuration management for websift.
Loads and validates settings from YAML files and environment variables.

Settings are immutable once loaded: components receive the Settings
instance (or one of its sections) through their constructors and never
read the environment themselves.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

CHROMIUM_HARDENING_ARGS = [
    "--no-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
]

BROWSER_FAMILIES = ("chromium", "firefox", "webkit")


def _split_csv(value: Any) -> Any:
    """Accept comma-separated strings where a list is expected."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


CsvList = Annotated[list[str], BeforeValidator(_split_csv)]


class GeneralConfig(BaseModel):
    """General configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str = "websift"
    version: str = "0.1.0"
    log_level: str = "INFO"
    log_json: bool = True
    log_to_file: bool = False
    logs_dir: str = "logs"


class SearchConfig(BaseModel):
    """Fallback chain and relevance arbitration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Priority order; index 0 is the first-priority engine
    engines: CsvList = Field(default_factory=lambda: ["bing", "brave", "duckduckgo"])

    excellent_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    acceptance_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    enable_quality_check: bool = True
    force_multi_engine: bool = False

    per_attempt_timeout_cap: float = Field(default=4.0, gt=0)  # seconds
    default_timeout_ms: int = Field(default=10000, gt=0)
    default_num_results: int = Field(default=5, ge=1)
    max_num_results: int = Field(default=10, ge=1)
    max_query_length: int = Field(default=1000, ge=1)

    browser_retry_attempts: int = Field(default=2, ge=1)
    browser_retry_backoff: float = Field(default=0.5, ge=0)  # seconds
    results_wait_timeout: float = Field(default=3.0, ge=0)  # seconds

    @model_validator(mode="after")
    def _check_thresholds(self) -> "SearchConfig":
        if self.acceptance_threshold > self.excellent_threshold:
            raise ValueError("acceptance_threshold must not exceed excellent_threshold")
        if not self.engines:
            raise ValueError("at least one search engine must be enabled")
        return self


class RateLimitConfig(BaseModel):
    """Request-rate governor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_requests_per_window: int = Field(default=10, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)
    max_concurrent: int = Field(default=5, ge=1)


class BrowserConfig(BaseModel):
    """Headless browser pool configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    headless: bool = True
    families: CsvList = Field(default_factory=lambda: ["chromium", "firefox"])
    max_browsers: int = Field(default=3, ge=1)
    engine_families: dict[str, str] = Field(
        default_factory=lambda: {"bing": "chromium", "brave": "firefox"}
    )

    # Fingerprint profile for every browsing context
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1366
    viewport_height: int = 768
    locale: str = "en-US"
    timezone_id: str = "America/New_York"

    launch_args: CsvList = Field(default_factory=lambda: list(CHROMIUM_HARDENING_ARGS))
    launch_timeout: float = Field(default=30.0, gt=0)  # seconds

    @field_validator("families")
    @classmethod
    def _known_families(cls, value: list[str]) -> list[str]:
        unknown = [family for family in value if family not in BROWSER_FAMILIES]
        if unknown:
            raise ValueError(f"unknown browser families: {unknown}")
        if not value:
            raise ValueError("at least one browser family is required")
        return value


class ExtractionConfig(BaseModel):
    """Content extraction pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_timeout_ms: int = Field(default=6000, gt=0)
    max_content_length: int = Field(default=10000, ge=1)
    min_content_length: int = Field(default=300, ge=0)  # below this, render in a browser
    min_text_ratio: float = Field(default=0.02, ge=0.0, le=1.0)
    max_concurrency: int = Field(default=3, ge=1)
    browser_fallback: bool = True
    simulate_reading: bool = True
    js_required_domains: CsvList = Field(
        default_factory=lambda: ["twitter.com", "x.com", "instagram.com", "medium.com"]
    )


class Settings(BaseModel):
    """Main settings container."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml, then deep-merge the `settings` section of local.yaml.

    Example local.yaml:
        settings:
          browser:
            headless: false

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config: dict[str, Any] = {}

    base_path = config_dir / "settings.yaml"
    if base_path.exists():
        with open(base_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    local_path = config_dir / "local.yaml"
    if local_path.exists():
        with open(local_path, encoding="utf-8") as f:
            local_overrides = yaml.safe_load(f) or {}
        if "settings" in local_overrides:
            config = _deep_merge(config, local_overrides["settings"])

    return config


def _parse_env_value(value: str) -> Any:
    """Parse an environment string as bool, int, float, list or str."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if "," in value:
        return _split_csv(value)
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _apply_env_overrides(
    config: dict[str, Any],
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with WEBSIFT_ and use
    double underscores for nested keys.

    Example:
        WEBSIFT_GENERAL__LOG_LEVEL=DEBUG
        WEBSIFT_BROWSER__FAMILIES=chromium,webkit

    Args:
        config: Configuration dictionary.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Configuration with environment overrides.
    """
    prefix = "WEBSIFT_"
    environ = dict(os.environ) if environ is None else environ

    for key, value in environ.items():
        if not key.startswith(prefix) or key == "WEBSIFT_CONFIG_DIR":
            continue

        key_path = key[len(prefix) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[key_path[-1]] = _parse_env_value(value)

    return config


def load_settings(
    config_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build a Settings instance without caching.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files
    3. Environment variables (highest priority)

    Args:
        config_dir: Directory holding settings.yaml. Defaults to WEBSIFT_CONFIG_DIR or ./config.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Settings instance.
    """
    env = dict(os.environ) if environ is None else environ
    if config_dir is None:
        config_dir = Path(env.get("WEBSIFT_CONFIG_DIR", get_project_root() / "config"))

    config = _load_yaml_config(config_dir)
    config = _apply_env_overrides(config, env)
    return Settings(**config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide application settings (loaded once).

    Returns:
        Settings instance.
    """
    return load_settings()


def get_project_root() -> Path:
    """Get the project root directory.

    Returns:
        Project root path.
    """
    # This file is at src/utils/config.py
    return Path(__file__).parent.parent.parent
