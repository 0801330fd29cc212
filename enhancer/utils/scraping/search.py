"""
Web search used by the agent's web_search tool.
"""
from typing import List, Optional

from ddgs import DDGS

from .models import SearchResult
from .logger import get_logger

logger = get_logger(__name__)


class SearchEngine:
    """Base class for search engines."""

    def __init__(self, name: str):
        self.name = name

    def search_web(self, query: str, max_results: int = 5) -> List[SearchResult]:
        raise NotImplementedError("Subclasses must implement search_web()")


class DuckDuckGo(SearchEngine):
    """DuckDuckGo search implementation."""

    def __init__(self, ddgs: Optional[DDGS] = None):
        super().__init__('duckduckgo')
        self.ddgs = ddgs or DDGS()

    def search_web(self, query: str, max_results: int = 5) -> List[SearchResult]:
        """
        Search DuckDuckGo for web results.

        Raises whatever the ddgs client raises; the tool layer turns that into
        an error payload for the model.
        """
        results = []
        for result in self.ddgs.text(query, max_results=max_results):
            results.append(SearchResult(
                title=result.get('title', '').strip(),
                url=result.get('href', ''),
                source=self.name,
                snippet=result.get('body', '').strip(),
            ))
        logger.info(f"DuckDuckGo search for '{query}' returned {len(results)} results")
        return results


def search_web(query: str, max_results: int = 5) -> List[SearchResult]:
    """Search the web with the default engine."""
    return DuckDuckGo().search_web(query, max_results)
