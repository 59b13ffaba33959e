"""
Document summarizer collaborator.

Summaries come from an external summarization service.  Routers inject a
``Summarizer`` (see ``linkshelf.dependencies.get_summarizer``); tests
override it with a fake.
"""
from typing import Protocol


class Summarizer(Protocol):
    async def summarize(self, link: str, title: str) -> str | None: ...


class EmptySummarizer:
    """Summarizer used when no summarization service is configured."""

    async def summarize(self, link: str, title: str) -> str | None:
        return None
