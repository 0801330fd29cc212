"""
Data models for the scraping package.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SearchResult:
    """Represents a search result from a search engine."""
    title: str
    url: str
    source: str  # e.g., 'duckduckgo'
    snippet: Optional[str] = None


@dataclass
class PageLink:
    """An outbound link found on a page."""
    text: str
    href: str
    is_external: bool = False


@dataclass
class PageImage:
    """An image found on a page, with its source resolved to an absolute URL."""
    alt: str
    src: str
    width: Optional[str] = None
    height: Optional[str] = None


@dataclass
class ContactInfo:
    """Email and phone-like strings scraped from the raw HTML."""
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)


@dataclass
class Candidate:
    """Text extracted from one container; only the best one per page is kept."""
    selector: str
    raw_text: str
    text: str
    score: float = 0.0


@dataclass
class ParseOutcome:
    """Result of a JSON parse attempt: either a value or an error message."""
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FetchResult:
    """
    The outcome of fetching one URL.

    A failed fetch is represented by the same type with `error` set, empty
    content fields and a quality score of zero (see `FetchResult.failure`).
    """
    url: str
    canonical_url: str = ''
    title: str = ''
    og_title: str = ''
    meta_description: str = ''
    meta_keywords: str = ''
    content: str = ''
    content_quality_score: float = 0.0
    content_length: int = 0
    full_content_length: int = 0
    links: List[PageLink] = None
    images: List[PageImage] = None
    contact_info: ContactInfo = None
    structured_data: List[Any] = None
    timestamp: str = ''
    status_code: Optional[int] = None
    language: str = 'unknown'
    charset: str = 'UTF-8'
    error: Optional[str] = None
    retry_count: Optional[int] = None

    def __post_init__(self):
        self.links = self.links or []
        self.images = self.images or []
        self.contact_info = self.contact_info or ContactInfo()
        self.structured_data = self.structured_data or []
        self.timestamp = self.timestamp or utc_timestamp()
        self.content_length = len(self.content)
        self.content_quality_score = min(max(self.content_quality_score, 0.0), 1.0)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, url: str, error: str, retry_count: int) -> 'FetchResult':
        """Build the error variant returned once all fetch attempts are used up."""
        return cls(url=url, error=error, retry_count=retry_count)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view; the error variant keeps only the fields that carry information."""
        if not self.ok:
            return {
                'url': self.url,
                'error': self.error,
                'title': self.title,
                'content': self.content,
                'content_quality_score': self.content_quality_score,
                'timestamp': self.timestamp,
                'retry_count': self.retry_count,
            }
        return {
            'url': self.url,
            'canonical_url': self.canonical_url,
            'title': self.title,
            'og_title': self.og_title,
            'meta_description': self.meta_description,
            'meta_keywords': self.meta_keywords,
            'content': self.content,
            'content_quality_score': self.content_quality_score,
            'content_length': self.content_length,
            'full_content_length': self.full_content_length,
            'links': [vars(link) for link in self.links],
            'images': [vars(image) for image in self.images],
            'contact_info': vars(self.contact_info),
            'structured_data': self.structured_data,
            'timestamp': self.timestamp,
            'status_code': self.status_code,
            'language': self.language,
            'charset': self.charset,
        }
