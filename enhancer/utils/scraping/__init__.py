"""
Web Scraping Utilities

This package provides the page-level pieces of the research pipeline:
- Page fetching with retries and browser-like headers
- Main content extraction and quality scoring
- Metadata, link, image, contact and structured data extraction
- Web search (DuckDuckGo)
"""

from .fetcher import FetchOptions, PageFetcher, create_session
from .extractor import ExtractionOptions, ScoringOptions, extract_page, score_content
from .search import search_web
from .models import FetchResult, SearchResult

__all__ = [
    'FetchOptions',
    'PageFetcher',
    'create_session',
    'ExtractionOptions',
    'ScoringOptions',
    'extract_page',
    'score_content',
    'search_web',
    'FetchResult',
    'SearchResult',
]
