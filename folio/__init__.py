"""Folio - tiered portfolio content with a moderated AI request responder"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so lightweight modules do not pull in FastAPI / Gemini
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name == "filter_content":
        from folio.content.filter import filter_content

        return filter_content

    if name == "TaskQueue":
        from folio.tasks.queue import TaskQueue

        return TaskQueue

    if name == "create_app":
        from folio.api.app import create_app

        return create_app

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "TaskQueue",
    "create_app",
    "filter_content",
]
