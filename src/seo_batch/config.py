from dotenv import load_dotenv
from dataclasses import dataclass, field, fields
from typing import Optional
from pathlib import Path
import json
import os

from pydantic import ValidationError

from .browser_config import BrowserConfig
from .constants import (
    AMP_VALIDATOR_URL as DEFAULT_AMP_VALIDATOR_URL,
    AMP_VALIDATOR_USER_AGENT as DEFAULT_AMP_VALIDATOR_USER_AGENT,
    DEFAULT_CHECKPOINT_EVERY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_NUMBER_OF_THREADS,
    DEFAULT_OUTPUT_FILE,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SHEET_NAME,
    DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
    DEFAULT_STATIC_PAGE_KEYWORDS,
    DEFAULT_URL_INPUT_FILE,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    AMP_VALIDATOR_URL = os.getenv("AMP_VALIDATOR_URL", DEFAULT_AMP_VALIDATOR_URL)
    AMP_VALIDATOR_USER_AGENT = os.getenv("AMP_VALIDATOR_USER_AGENT", DEFAULT_AMP_VALIDATOR_USER_AGENT)


settings = Settings()

ENV_PREFIX = "SEO_BATCH_"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _parse_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for '{key}': {value!r}")


@dataclass
class RunConfig:
    """Configuration for one batch run."""

    # Inputs
    url_input_file: str = DEFAULT_URL_INPUT_FILE
    read_url_file_enabled: bool = True
    base_url: Optional[str] = None
    static_page_keywords: str = DEFAULT_STATIC_PAGE_KEYWORDS

    # Report
    output_file: str = DEFAULT_OUTPUT_FILE
    sheet_name: str = DEFAULT_SHEET_NAME
    checkpoint_every: int = DEFAULT_CHECKPOINT_EVERY

    # Execution
    number_of_threads: int = DEFAULT_NUMBER_OF_THREADS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    shutdown_timeout_seconds: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS

    # Check AMP URLs against the AMP validator service
    validate_amp: bool = False

    # Optional JSON vendor table replacing the built-in one
    vendor_table_file: Optional[str] = None

    browser: BrowserConfig = field(default_factory=BrowserConfig)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: Naming the first invalid setting
        """
        if self.number_of_threads < 1:
            raise ValueError(f"number_of_threads must be >= 1, got {self.number_of_threads}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.retry_delay_seconds < 0:
            raise ValueError(f"retry_delay_seconds must be >= 0, got {self.retry_delay_seconds}")
        if self.checkpoint_every < 1:
            raise ValueError(f"checkpoint_every must be >= 1, got {self.checkpoint_every}")
        if self.shutdown_timeout_seconds <= 0:
            raise ValueError(f"shutdown_timeout_seconds must be > 0, got {self.shutdown_timeout_seconds}")
        if not self.sheet_name:
            raise ValueError("sheet_name must not be empty")
        if not self.output_file:
            raise ValueError("output_file must not be empty")

    @classmethod
    def _coerce(cls, values: dict) -> dict:
        """Convert raw strings from env or JSON into field types."""
        coerced = {}
        for f in fields(cls):
            if f.name == "browser" or f.name not in values:
                continue
            raw = values[f.name]
            try:
                if f.type in (int, "int"):
                    coerced[f.name] = int(raw)
                elif f.type in (float, "float"):
                    coerced[f.name] = float(raw)
                elif f.type in (bool, "bool"):
                    coerced[f.name] = _parse_bool(f.name, raw)
                elif raw is None or (isinstance(raw, str) and not raw.strip()):
                    coerced[f.name] = None if "Optional" in str(f.type) else raw
                else:
                    coerced[f.name] = str(raw)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for '{f.name}': {raw!r} ({e})") from e
        return coerced

    @staticmethod
    def _browser_from(values: dict) -> BrowserConfig:
        try:
            return BrowserConfig(**values)
        except ValidationError as e:
            raise ValueError(f"Invalid browser settings: {e}") from e

    @classmethod
    def from_env(cls) -> "RunConfig":
        """Load configuration from environment variables.

        Run settings are prefixed with SEO_BATCH_, browser settings with
        SEO_BATCH_BROWSER_, e.g. SEO_BATCH_NUMBER_OF_THREADS=4 or
        SEO_BATCH_BROWSER_HEADLESS=true

        Returns:
            RunConfig with values from environment
        """
        run_values = {}
        for f in fields(cls):
            env_value = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if env_value is not None:
                run_values[f.name] = env_value

        browser_values = {}
        for name in BrowserConfig.model_fields:
            env_value = os.getenv(f"{ENV_PREFIX}BROWSER_{name.upper()}")
            if env_value is None:
                continue
            if name == "launch_args":
                browser_values[name] = [arg for arg in env_value.split() if arg]
            else:
                browser_values[name] = env_value

        return cls(browser=cls._browser_from(browser_values), **cls._coerce(run_values))

    @classmethod
    def from_file(cls, path: str) -> "RunConfig":
        """Load configuration from a JSON configuration file.

        Args:
            path: Path to JSON configuration file. Run settings sit at the
                top level, browser settings under "browser".

        Returns:
            RunConfig with values from file
        """
        file_path = Path(path)

        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            config = json.load(f)

        browser_values = config.get("browser") or {}
        return cls(browser=cls._browser_from(browser_values), **cls._coerce(config))

    def with_overrides(self, **overrides) -> "RunConfig":
        """Return a copy with the non-None overrides applied.

        Keys naming BrowserConfig fields are applied to the browser settings.
        """
        run_values = self.to_dict()
        browser_values = run_values.pop("browser")
        for key, value in overrides.items():
            if value is None:
                continue
            if key in BrowserConfig.model_fields:
                browser_values[key] = value
            else:
                run_values[key] = value
        return RunConfig(browser=self._browser_from(browser_values), **self._coerce(run_values))

    def to_dict(self) -> dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary of all settings, browser settings nested
        """
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "browser"
        }
        data["browser"] = self.browser.model_dump()
        return data

    def save_to_file(self, path: str) -> None:
        """Save current configuration to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
