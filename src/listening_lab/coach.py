"""
Listening coach backed by the OpenAI chat completions API.

The coach answers free-text questions about the user's audio chain and
suggests tracks. The persona instruction asks the model to end any reply
that mentions tracks with a fenced ``json`` block; that block is parsed into
playable suggestions and stripped from the text shown to the user.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from .config import DEFAULT_CHAIN_DESCRIPTION, DEFAULT_MODEL
from .exceptions import CoachError
from .session import Suggestion

logger = logging.getLogger(__name__)

JSON_BLOCK_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```")

COACH_INSTRUCTIONS = """You are an expert audio coach helping audiophiles develop critical listening skills.

You have deep knowledge of:
- Digital audio: filters, oversampling, noise shaping, DAC architectures
- Analog gear: amplifiers, speakers, headphones, cables
- Audiophile test tracks and what they reveal

Your role:
- Suggest tracks that reveal specific audio characteristics
- Provide timestamped listening notes when possible
- Help users develop vocabulary for what they hear
- Be specific about what frequencies, instruments, or moments to focus on

Keep responses concise and actionable.

IMPORTANT: When you suggest tracks, end your response with a JSON block containing ONLY the tracks:
```json
{"tracks": [{"artist": "Artist Name", "track": "Track Title"}, ...]}
```
This allows the user to play tracks directly. Always include this JSON when mentioning specific tracks."""

SUGGEST_TEMPLATE = """Suggest 3-5 tracks for: "{mood}"

For each track:
1. Artist - Track Name
2. What to listen for (timestamps if you know them)
3. What audio characteristic this reveals

Be specific. Format as a numbered list."""


@dataclass
class CoachReply:
    """Parsed coach response.

    Attributes:
        display_text: Reply with the JSON block removed
        suggestions: Tracks from the JSON block (may be empty)
        raw_text: Unmodified model output
    """

    display_text: str
    suggestions: List[Suggestion] = field(default_factory=list)
    raw_text: str = ""


def parse_suggestions(text: str) -> List[Suggestion]:
    """Extract artist/track suggestions from the first fenced json block.

    Anything malformed yields an empty list rather than an error.

    Args:
        text: Raw coach reply

    Returns:
        Suggestions whose entries had both ``artist`` and ``track``
    """
    match = JSON_BLOCK_PATTERN.search(text or "")
    if not match:
        return []

    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.debug(f"Ignoring malformed track block: {e}")
        return []

    tracks = data.get("tracks") if isinstance(data, dict) else None
    if not isinstance(tracks, list):
        return []

    suggestions = []
    for entry in tracks:
        if not isinstance(entry, dict):
            continue
        artist, track = entry.get("artist"), entry.get("track")
        if artist and track:
            suggestions.append(Suggestion(artist=str(artist), track=str(track)))
    return suggestions


def strip_structured_block(text: str) -> str:
    """Remove fenced json blocks so only the human-readable answer remains."""
    return JSON_BLOCK_PATTERN.sub("", text or "").strip()


class CoachClient:
    """OpenAI-backed listening coach."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        chain_description: str = DEFAULT_CHAIN_DESCRIPTION,
    ):
        """
        Initialize the coach.

        Args:
            api_key: OpenAI API key. If None, reads OPENAI_API_KEY, OPENAI_KEY or LLM_API_KEY.
            model: Model name. If None, reads OPENAI_MODEL (default: "gpt-4o").
            chain_description: The user's playback chain, included in every prompt

        Raises:
            ValueError: If no API key is provided or found in environment
        """
        self.api_key = (
            api_key or os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_KEY") or os.getenv("LLM_API_KEY")
        )
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY or OPENAI_KEY must be provided or set in environment")

        self.client = AsyncOpenAI(api_key=self.api_key)
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        self.chain_description = chain_description

    def build_prompt(self, question: str) -> str:
        return f"User's audio chain: {self.chain_description}\n\nUser: {question}"

    async def ask(self, question: str) -> CoachReply:
        """
        Ask the coach a question.

        Args:
            question: Free-text question or request

        Returns:
            CoachReply with display text and any suggested tracks

        Raises:
            CoachError: If the OpenAI request fails or returns no choices
        """
        logger.info(f"Asking coach ({self.model}): {question[:80]}")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": COACH_INSTRUCTIONS},
                    {"role": "user", "content": self.build_prompt(question)},
                ],
            )
        except OpenAIError as e:
            raise CoachError(f"Coach error: {e}") from e

        if not response.choices:
            raise CoachError("Coach returned no answer")
        text = response.choices[0].message.content or ""
        suggestions = parse_suggestions(text)
        logger.debug(f"Coach reply: {len(text)} chars, {len(suggestions)} suggestions")
        return CoachReply(
            display_text=strip_structured_block(text),
            suggestions=suggestions,
            raw_text=text,
        )

    async def suggest(self, mood: str) -> CoachReply:
        """Ask for 3-5 tracks with listening notes for a mood or purpose."""
        return await self.ask(SUGGEST_TEMPLATE.format(mood=mood))
