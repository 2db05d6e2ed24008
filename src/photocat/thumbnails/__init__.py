from src.photocat.thumbnails.service import ThumbnailService, fit_size

__all__ = ["ThumbnailService", "fit_size"]
