"""
Model catalog client implementation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import CatalogFetchError

logger = logging.getLogger(__name__)


@dataclass
class ModelDescriptor:
    """A selectable scorer model."""
    id: str
    name: str
    provider: str
    is_free: bool
    context_length: int = 0
    pricing: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, data: dict) -> "ModelDescriptor":
        """Create from a catalog API entry."""
        model_id = data["id"]
        pricing = data.get("pricing") or {}
        return cls(
            id=model_id,
            name=data.get("name") or model_id,
            provider=extract_provider(model_id),
            is_free=is_free_pricing(pricing),
            context_length=data.get("context_length") or 0,
            pricing=pricing,
        )

    @property
    def option_label(self) -> str:
        """Display label: name, free tag, provider."""
        price_tag = " (free)" if self.is_free else ""
        return f"{self.name}{price_tag} ({self.provider})"


def extract_provider(model_id: str) -> str:
    """Provider is the upper-cased id prefix before the first slash."""
    return model_id.split("/")[0].upper()


def is_free_pricing(pricing: Optional[dict]) -> bool:
    """A model is free when both prompt and completion prices are zero."""
    if not pricing:
        return False
    try:
        return float(pricing.get("prompt")) == 0 and float(pricing.get("completion")) == 0
    except (TypeError, ValueError):
        return False


FALLBACK_MODELS = [
    ModelDescriptor("anthropic/claude-3.5-sonnet", "Claude 3.5 Sonnet", "Anthropic", False),
    ModelDescriptor("openai/gpt-4-turbo", "GPT-4 Turbo", "OpenAI", False),
    ModelDescriptor("openai/gpt-3.5-turbo", "GPT-3.5 Turbo", "OpenAI", False),
    ModelDescriptor("google/gemini-pro", "Gemini Pro", "Google", False),
    ModelDescriptor(
        "meta-llama/llama-3-8b-instruct:free", "Llama 3 8B (Free)", "Meta", True
    ),
]


class CatalogClient:
    """
    Client for the model-listing endpoint.

    Features:
    - Single GET of the full catalog
    - Automatic retry with backoff on transient statuses
    """

    DEFAULT_TIMEOUT = 15

    def __init__(
        self,
        base_url: str,
        referer: str = "http://localhost",
        app_title: str = "Pym Write",
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize catalog client.

        Args:
            base_url: API base URL (e.g., "https://openrouter.ai/api/v1")
            referer: Value for the HTTP-Referer header
            app_title: Value for the X-Title header
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient failures
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            "HTTP-Referer": referer,
            "X-Title": app_title,
            "Accept": "application/json",
        })

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def list_models(self) -> list[ModelDescriptor]:
        """
        Fetch the model catalog.

        Returns:
            Models in catalog order

        Raises:
            CatalogFetchError: On network failure, non-success status or an
                unexpected body shape
        """
        url = f"{self.base_url}/models"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise CatalogFetchError(f"Failed to fetch models: {e}") from e

        if not response.ok:
            raise CatalogFetchError(f"Failed to fetch models: {response.status_code}")

        try:
            entries = response.json()["data"]
            return [ModelDescriptor.from_api_response(entry) for entry in entries]
        except (ValueError, KeyError, TypeError) as e:
            raise CatalogFetchError(f"Unexpected catalog response: {e}") from e

    def close(self) -> None:
        self.session.close()


class ModelCatalog:
    """
    Cached model catalog with free/paid partitioning.

    The catalog is fetched at most once per instance; a failed fetch is
    replaced by FALLBACK_MODELS and also counts as loaded.
    """

    def __init__(self, client: CatalogClient):
        self.client = client
        self.models: list[ModelDescriptor] = []
        self.loaded = False
        self.used_fallback = False

    def load(self) -> list[ModelDescriptor]:
        """Fetch and sort the catalog (free first, then by provider)."""
        if self.loaded:
            return self.models

        try:
            models = self.client.list_models()
            self.used_fallback = False
        except CatalogFetchError as e:
            logger.warning("Error fetching models, using default list: %s", e)
            models = list(FALLBACK_MODELS)
            self.used_fallback = True

        self.models = sorted(models, key=lambda m: (not m.is_free, m.provider))
        self.loaded = True
        logger.info("Loaded %d models%s", len(self.models),
                    " (fallback list)" if self.used_fallback else "")
        return self.models

    @property
    def free_models(self) -> list[ModelDescriptor]:
        return [m for m in self.load() if m.is_free]

    @property
    def paid_models(self) -> list[ModelDescriptor]:
        return [m for m in self.load() if not m.is_free]

    def get(self, model_id: str) -> Optional[ModelDescriptor]:
        for model in self.load():
            if model.id == model_id:
                return model
        return None

    def resolve_selection(self, saved_model: Optional[str], default_model: str) -> str:
        """Keep the saved model only when the catalog knows it."""
        if saved_model and self.get(saved_model) is not None:
            return saved_model
        return default_model
