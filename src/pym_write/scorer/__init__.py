"""Remote scorer module.

Submits text to a remote model for an AI-generated probability, with a
seeded mock fallback when no credential is stored or the call fails.
"""

from pym_write.scorer.prompts import ScorePrompt
from pym_write.scorer.service import RemoteScorer, ScoreResult, ScoreSource

__all__ = ["RemoteScorer", "ScoreResult", "ScoreSource", "ScorePrompt"]
