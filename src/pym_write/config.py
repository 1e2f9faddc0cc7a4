"""
Configuration management.

All tunables for the scanner live here: API endpoints, timeouts, mock-path
delays, history capacity and the local store location. Config is read from
YAML and individual values can be overridden through the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_API_URL = "https://openrouter.ai/api/v1"
DEFAULT_CLASSIFIER_URL = (
    "https://api-inference.huggingface.co/models/roberta-base-openai-detector"
)
DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class ScorerConfig:
    """Remote scorer settings.

    - api_url: Base URL of the chat-completion API (catalog shares it)
    - classifier_url: Full URL of the secondary classification endpoint
    - mock_delay_seconds: Simulated latency when no credential is stored
    - fallback_delay_seconds: Delay before the mock score after an API error
    """

    api_url: str = DEFAULT_API_URL
    classifier_url: str = DEFAULT_CLASSIFIER_URL
    default_model: str = DEFAULT_MODEL
    # Request timeout (seconds)
    timeout_seconds: int = 60
    mock_delay_seconds: float = 1.5
    fallback_delay_seconds: float = 1.0


@dataclass
class CatalogConfig:
    """Model catalog settings."""

    # Sent as HTTP-Referer / X-Title when listing models
    referer: str = "http://localhost"
    app_title: str = "Pym Write"
    timeout_seconds: int = 15
    max_retries: int = 2


@dataclass
class HistoryConfig:
    """Scan history settings."""

    capacity: int = 8
    # Minimum stripped text length accepted by a scan
    min_text_length: int = 100


@dataclass
class Config:
    """Application configuration."""

    scorer: ScorerConfig = field(default_factory=ScorerConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    store_path: Path = field(default_factory=lambda: Path("data/pym_write.db"))

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.scorer.api_url:
            errors.append("scorer.api_url is required")
        if not self.scorer.default_model:
            errors.append("scorer.default_model is required")
        if self.scorer.timeout_seconds <= 0:
            errors.append("scorer.timeout_seconds must be positive")
        if self.scorer.mock_delay_seconds < 0 or self.scorer.fallback_delay_seconds < 0:
            errors.append("mock delays must not be negative")
        if self.history.capacity < 1:
            errors.append("history.capacity must be at least 1")
        if self.history.min_text_length < 0:
            errors.append("history.min_text_length must not be negative")

        return errors


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - PYM_WRITE_API_URL
    - PYM_WRITE_CLASSIFIER_URL
    - PYM_WRITE_TIMEOUT (request timeout in seconds)
    - PYM_WRITE_DEFAULT_MODEL
    - PYM_WRITE_STORE_PATH
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    scorer_data = data.get("scorer", {})
    scorer = ScorerConfig(
        api_url=os.environ.get(
            "PYM_WRITE_API_URL", scorer_data.get("api_url", DEFAULT_API_URL)
        ),
        classifier_url=os.environ.get(
            "PYM_WRITE_CLASSIFIER_URL",
            scorer_data.get("classifier_url", DEFAULT_CLASSIFIER_URL),
        ),
        default_model=os.environ.get(
            "PYM_WRITE_DEFAULT_MODEL", scorer_data.get("default_model", DEFAULT_MODEL)
        ),
        timeout_seconds=int(os.environ.get(
            "PYM_WRITE_TIMEOUT", scorer_data.get("timeout_seconds", 60)
        )),
        mock_delay_seconds=float(scorer_data.get("mock_delay_seconds", 1.5)),
        fallback_delay_seconds=float(scorer_data.get("fallback_delay_seconds", 1.0)),
    )

    catalog_data = data.get("catalog", {})
    catalog = CatalogConfig(
        referer=catalog_data.get("referer", "http://localhost"),
        app_title=catalog_data.get("app_title", "Pym Write"),
        timeout_seconds=catalog_data.get("timeout_seconds", 15),
        max_retries=catalog_data.get("max_retries", 2),
    )

    history_data = data.get("history", {})
    history = HistoryConfig(
        capacity=history_data.get("capacity", 8),
        min_text_length=history_data.get("min_text_length", 100),
    )

    store_path = os.environ.get(
        "PYM_WRITE_STORE_PATH", data.get("store_path", "data/pym_write.db")
    )

    return Config(
        scorer=scorer,
        catalog=catalog,
        history=history,
        store_path=Path(store_path),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = f"""# Pym Write configuration
#
# The scoring credential is NOT stored here. Save it with
#   pym-write settings --api-key <key>
# Without a credential, scans use mock scores.

scorer:
  api_url: "{DEFAULT_API_URL}"
  classifier_url: "{DEFAULT_CLASSIFIER_URL}"
  default_model: "{DEFAULT_MODEL}"
  timeout_seconds: 60
  mock_delay_seconds: 1.5        # Simulated latency without a credential
  fallback_delay_seconds: 1.0    # Delay before mock score after an API error

catalog:
  referer: "http://localhost"    # Sent as HTTP-Referer when listing models
  app_title: "Pym Write"         # Sent as X-Title
  timeout_seconds: 15
  max_retries: 2

history:
  capacity: 8                    # Oldest scans are evicted beyond this
  min_text_length: 100           # Shorter texts are rejected

# Local store (preferences and scan history)
store_path: "data/pym_write.db"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
