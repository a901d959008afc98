"""LLM collaborators (query enhancement, relevance ranking, course advice)."""

from .openai_collaborators import (
    DEFAULT_MODEL,
    OpenAICourseAdvisor,
    OpenAIQueryEnhancer,
    OpenAIRelevanceRanker,
    create_openai_client,
    parse_indices,
)

__all__ = [
    "DEFAULT_MODEL",
    "OpenAICourseAdvisor",
    "OpenAIQueryEnhancer",
    "OpenAIRelevanceRanker",
    "create_openai_client",
    "parse_indices",
]
