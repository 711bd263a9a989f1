"""
Final ordering of recommendation candidates.

Small pools are returned as-is; only pools larger than the result size are
worth a language-model call to pick and order the best ones.
"""

import json

from readnext.core.logging import get_logger
from readnext.services.external_apis import CandidateBook
from readnext.services.llm_client import LLMClient, LLMError, extract_index_array

logger = get_logger(__name__)

RANKING_PROMPT = """Reader profile: {profile}

Books to rank:
{books}

Return ONLY a JSON array with the indices of the {limit} best books for this reader, ordered by relevance, e.g.:
{example}
"""


class Ranker:
    def __init__(self, llm: LLMClient | None = None, limit: int = 12):
        self.llm = llm
        self.limit = limit

    async def rank(self, candidates: list[CandidateBook], profile_text: str) -> list[CandidateBook]:
        if len(candidates) <= self.limit or self.llm is None:
            return candidates[: self.limit]

        try:
            reply = await self.llm.generate(self._build_prompt(candidates, profile_text))
            indices = extract_index_array(reply)
        except LLMError as e:
            logger.warning(
                "Ranking failed, keeping aggregation order",
                extra={"extra_fields": {"error": str(e)}},
            )
            return candidates[: self.limit]

        ranked = []
        used = set()
        for idx in indices:
            if 0 <= idx < len(candidates) and idx not in used:
                used.add(idx)
                ranked.append(candidates[idx])
            if len(ranked) >= self.limit:
                break

        if not ranked:
            logger.warning("Ranking reply had no usable indices, keeping aggregation order")
            return candidates[: self.limit]

        return ranked

    def _build_prompt(self, candidates: list[CandidateBook], profile_text: str) -> str:
        books = [
            {"index": idx, "title": c.title, "author": c.author, "genre": c.genre}
            for idx, c in enumerate(candidates)
        ]
        return RANKING_PROMPT.format(
            profile=profile_text,
            books=json.dumps(books, indent=2, ensure_ascii=False),
            limit=self.limit,
            example=json.dumps(list(range(self.limit))),
        )
