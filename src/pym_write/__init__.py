"""
Pym Write: AI-generated text scanner with local scan history.

Submits text to a remote language-model API for an "AI-generated
probability", falls back to a seeded mock score when no credential is
configured or the call fails, and keeps a bounded, persisted history of
past scans.
"""

__version__ = "0.1.0"
