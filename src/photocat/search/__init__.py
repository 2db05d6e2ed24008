"""
PhotoCat - Keyword Search

Usage:
    from src.photocat.search import SearchService

    files = await search_service.search('beach "new york"')
    hints = await search_service.suggest("beach su")
"""
from src.photocat.search.query import parse_query, split_live_token
from src.photocat.search.service import SearchService, Suggestion

__all__ = ["SearchService", "Suggestion", "parse_query", "split_live_token"]
