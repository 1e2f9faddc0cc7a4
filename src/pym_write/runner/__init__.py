"""
CLI runner module.

Provides commands:
- scan: Score text and add it to history
- history: List, show, rename, delete or clear past scans
- settings: Theme, model and API key
- models: List selectable scorer models
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
