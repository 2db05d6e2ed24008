from src.photocat.tags.manager import KeywordManager, normalize

__all__ = ["KeywordManager", "normalize"]
