"""
PhotoCat - Search Service

Keyword search over the catalog and keyword autocomplete.
"""
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional
from bson import ObjectId
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.database.manager import DatabaseManager
from src.photocat.models.file_record import FileRecord
from src.photocat.models.keyword import Keyword
from src.photocat.search.query import parse_query, split_live_token
from src.photocat.tags.manager import normalize

SUGGEST_LIMIT = 10


@dataclass
class Suggestion:
    """Autocomplete candidate."""
    keyword: str
    count: int
    full_query: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def contains_pattern(term: str) -> Dict[str, str]:
    """Case-insensitive substring match; regex metacharacters in `term` are literal."""
    return {"$regex": re.escape(term), "$options": "i"}


class SearchService(BaseSystem):
    """
    Keyword search.

    search() tries an exact match on every term first and falls back to
    substring matching; in both modes a file must satisfy every term.
    suggest() completes the last token from keywords that co-occur with
    the earlier tokens.
    """

    depends_on = [DatabaseManager]

    async def initialize(self) -> None:
        logger.info("SearchService initializing")
        await super().initialize()
        logger.info("SearchService ready")

    async def shutdown(self) -> None:
        logger.info("SearchService shutting down")
        await super().shutdown()

    async def _substring_ids(self, term: str) -> List[ObjectId]:
        keywords = await Keyword.find({"value": contains_pattern(term)})
        return [k.id for k in keywords]

    async def _exact_ids(self, terms: List[str]) -> Optional[List[ObjectId]]:
        """Keyword ids for the terms, or None if any term is not a keyword."""
        values = list(dict.fromkeys(terms))
        keywords = await Keyword.find({"value": {"$in": values}})
        if len(keywords) != len(values):
            return None
        return [k.id for k in keywords]

    async def search(self, text: str) -> List[FileRecord]:
        """
        Find files carrying every term of the query.

        Args:
            text: Query string; double quotes group words into one term

        Returns:
            Matching files sorted by filename
        """
        terms = [t for t in (normalize(t) for t in parse_query(text)) if t]
        if not terms:
            return []

        exact_ids = await self._exact_ids(terms)
        if exact_ids:
            files = await FileRecord.find({"keywords": {"$all": exact_ids}}, sort=[("filename", 1)])
            if files:
                logger.debug(f"Search {terms}: {len(files)} exact matches")
                return files

        clauses = []
        for term in terms:
            ids = await self._substring_ids(term)
            if not ids:
                logger.debug(f"Search {terms}: no keyword contains '{term}'")
                return []
            clauses.append({"keywords": {"$in": ids}})

        files = await FileRecord.find({"$and": clauses}, sort=[("filename", 1)])
        logger.debug(f"Search {terms}: {len(files)} substring matches")
        return files

    async def suggest(self, text: str, limit: int = SUGGEST_LIMIT) -> List[Suggestion]:
        """
        Complete the token being typed.

        Earlier tokens restrict the candidate files (each must match one of
        the file's keywords by substring). Candidates are keywords on those
        files containing the live token, ranked by how many candidate files
        carry them, then alphabetically.

        Args:
            text: Raw input, e.g. "beach su"
            limit: Maximum suggestions

        Returns:
            Suggestions carrying the full query they would produce
        """
        earlier, live = split_live_token(text)
        live = normalize(live)

        pipeline: List[Dict[str, Any]] = []
        clauses = []
        for token in earlier:
            ids = await self._substring_ids(normalize(token))
            if not ids:
                return []
            clauses.append({"keywords": {"$in": ids}})
        if clauses:
            pipeline.append({"$match": {"$and": clauses}})

        pipeline.append({"$unwind": "$keywords"})
        if live:
            live_ids = await self._substring_ids(live)
            if not live_ids:
                return []
            pipeline.append({"$match": {"keywords": {"$in": live_ids}}})
        pipeline.append({"$group": {"_id": "$keywords", "count": {"$sum": 1}}})

        counts = {row["_id"]: row["count"] for row in await FileRecord.aggregate(pipeline)}
        if not counts:
            return []

        keywords = await Keyword.find({"_id": {"$in": list(counts.keys())}})
        ranked = sorted(keywords, key=lambda k: (-counts[k.id], k.value))[:limit]

        prefix = " ".join(earlier)
        return [
            Suggestion(
                keyword=k.value,
                count=counts[k.id],
                full_query=f"{prefix} {k.value}" if prefix else k.value,
            )
            for k in ranked
        ]
