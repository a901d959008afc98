"""
OpenAI-backed collaborators.

- OpenAIQueryEnhancer: rewrites a raw query into richer search terms
- OpenAIRelevanceRanker: orders candidate listings by relevance
- OpenAICourseAdvisor: proposes queries from a learner profile and writes
  per-listing insights

All three share one AsyncOpenAI client configured with ``max_retries=0``:
each search makes at most one attempt per collaborator, and the latency
ceiling is enforced by the caller.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from openai import AsyncOpenAI

from course_search.shared.exceptions import ConfigurationError, ExternalCallFailure

if TYPE_CHECKING:
    from collections.abc import Sequence

    from course_search.domain.entities import CourseListing

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"

ENHANCER_SYSTEM_PROMPT = (
    "You are a helpful assistant that enhances search queries for online courses. "
    "Return only the enhanced search terms, nothing else."
)
RANKER_SYSTEM_PROMPT = (
    "You are an expert at ranking online courses. Given a list of courses and a search query, "
    "rank them by relevance and quality. Return only the indices of the top courses in order "
    "of preference, separated by commas."
)
ADVISOR_SYSTEM_PROMPT = "You are an expert at recommending online courses based on user profiles and preferences."
INSIGHTS_SYSTEM_PROMPT = "You are an expert at analyzing online courses and providing insights."

_INDEX_TOKEN = re.compile(r"[,\s]+")


def create_openai_client(api_key: str | None, *, base_url: str | None = None, timeout: float = 10.0) -> AsyncOpenAI:
    """
    Build the shared client.

    Raises:
        ConfigurationError: No API key.
    """
    if not api_key:
        msg = "OPENAI_API_KEY is not configured"
        raise ConfigurationError(msg)
    client = AsyncOpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout, max_retries=0)
    logger.info(f"OpenAI client initialized (base: {base_url or 'default'})")
    return client


def parse_indices(text: str) -> list[int]:
    """
    Integers from a comma-separated answer, in order. Non-integer tokens are
    ignored; range and duplicate checks are left to the caller.

    Raises:
        ExternalCallFailure: The answer holds no integer at all.
    """
    indices: list[int] = []
    for token in _INDEX_TOKEN.split(text.strip()):
        token = token.strip().rstrip(".")
        if not token:
            continue
        try:
            indices.append(int(token))
        except ValueError:
            continue
    if not indices:
        raise ExternalCallFailure("relevance_ranker", f"no indices in answer {text[:80]!r}")
    return indices


class _OpenAIChat:
    """Single-turn chat completion helper."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        self._client = client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def _complete(self, system: str, user: str, *, max_tokens: int, temperature: float) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


class OpenAIQueryEnhancer(_OpenAIChat):
    async def enhance(self, text: str) -> str:
        enhanced = await self._complete(
            ENHANCER_SYSTEM_PROMPT,
            f'Enhance this search query for finding online courses: "{text}". '
            "Add relevant keywords that would help find better courses.",
            max_tokens=50,
            temperature=0.3,
        )
        # Models often echo the answer in quotes
        enhanced = enhanced.strip().strip('"').strip()
        logger.debug(f"Enhanced query '{text}' -> '{enhanced}'")
        return enhanced


class OpenAIRelevanceRanker(_OpenAIChat):
    async def rank(self, candidates: Sequence[CourseListing], query: str, count: int) -> list[int]:
        lines = "\n".join(f"{index}: {listing.summary_line()}" for index, listing in enumerate(candidates))
        answer = await self._complete(
            RANKER_SYSTEM_PROMPT,
            f'Search query: "{query}"\n\nCourses:\n{lines}\n\n'
            f"Rank the top {count} courses by relevance and quality. Return only the indices separated by commas.",
            max_tokens=50,
            temperature=0.2,
        )
        return parse_indices(answer)


class OpenAICourseAdvisor(_OpenAIChat):
    """Recommendation queries and course insights."""

    async def suggest_queries(self, profile: dict[str, Any], count: int = 3) -> list[str]:
        answer = await self._complete(
            ADVISOR_SYSTEM_PROMPT,
            f"Based on this user profile, suggest {count} course search queries:\n\n"
            f"User Profile: {json.dumps(profile, default=str)}\n\n"
            "Return only the search queries, one per line.",
            max_tokens=200,
            temperature=0.7,
        )
        queries = [line.strip().lstrip("-*0123456789. ").strip().strip('"') for line in answer.splitlines()]
        return [q for q in queries if q][:count]

    async def analyze(self, listing: CourseListing) -> str:
        return await self._complete(
            INSIGHTS_SYSTEM_PROMPT,
            f"Analyze this course and provide insights:\n\n{json.dumps(listing.to_dict(), indent=2)}\n\n"
            "Provide a brief analysis including pros, cons, and who this course is best for.",
            max_tokens=300,
            temperature=0.5,
        )
