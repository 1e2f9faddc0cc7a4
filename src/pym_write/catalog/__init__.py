"""
Model catalog client.

Provides:
- Listing of selectable scorer models (GET /models)
- Free/paid partitioning by prompt and completion price
- Static fallback list when the catalog cannot be fetched
"""

from .client import FALLBACK_MODELS, CatalogClient, ModelCatalog, ModelDescriptor

__all__ = [
    "CatalogClient",
    "ModelCatalog",
    "ModelDescriptor",
    "FALLBACK_MODELS",
]
