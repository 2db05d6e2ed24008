"""
PhotoCat source tree.

- src.core: engine infrastructure (systems, locator, config, ORM, logging)
- src.photocat: photo catalog domain
"""
