"""
Event primitives.

Usage:
    from src.core.events import Signal

    on_changed = Signal("ConfigChanged")
    on_changed.connect(handler)
    on_changed.emit(section, key, value)
"""
from .observer import Signal


__all__ = ["Signal"]
