"""Prompt templates for remote AI-probability scoring.

Prompts are versioned so a change in wording is visible in logs and tests.
"""

from __future__ import annotations

from dataclasses import dataclass

PROMPT_VERSION = "v1.0"


@dataclass
class ScorePrompt:
    """Prompt template for AI-probability scoring.

    Attributes:
        version: Prompt version.
        system_prompt: System message demanding a JSON object with "score".
    """

    version: str = PROMPT_VERSION

    system_prompt: str = (
        "Analyze the provided text and return ONLY a JSON object with 'score' "
        "(0-1 float for AI probability)."
    )

    def build_messages(self, text: str) -> list[dict[str, str]]:
        """Build the chat messages for one scoring request.

        The user text is sent unmodified as a single message.
        """
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]
