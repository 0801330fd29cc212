"""
Text, URL and JSON helpers shared by the fetcher, the extractor and the agent.
"""
import json
import re
from dataclasses import asdict, is_dataclass
from itertools import islice
from typing import Any, List
from urllib.parse import urljoin, urlparse

from .models import ParseOutcome
from .logger import get_logger

logger = get_logger(__name__)

# Zero-width and other invisible format characters
INVISIBLE_CHARS_RE = re.compile(r"[\u200b-\u200f\u2060\ufeff\u00ad]")
WHITESPACE_RE = re.compile(r'\s+')
REPEATED_PUNCTUATION_RE = re.compile(r'([。！？；,，!?;])\1+')

EMAIL_RE = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
PHONE_RE = re.compile(r'(\+?[\d\s\-\(\)]{8,15})')
DIGIT_RUN_RE = re.compile(r'\d{4,}')

URL_IN_TEXT_RE = re.compile(r'https?://[^\s<>"\'，。、；！？）】]+', re.IGNORECASE)
URL_TRAILING_PUNCTUATION = '.,;:!?)]}\'"'


def clean_text(text: str) -> str:
    """
    Normalize extracted text: drop invisible characters, collapse whitespace
    and repeated punctuation, trim.
    """
    if not text:
        return ''
    text = INVISIBLE_CHARS_RE.sub('', text)
    text = WHITESPACE_RE.sub(' ', text)
    text = REPEATED_PUNCTUATION_RE.sub(r'\1', text)
    return text.strip()


def resolve_url(url: str, base_url: str) -> str:
    """Resolve a possibly relative URL against the page URL; malformed input is returned as is."""
    if not url:
        return url
    try:
        return urljoin(base_url, url)
    except ValueError as e:
        logger.debug(f"Could not resolve {url!r} against {base_url!r}: {e}")
        return url


def get_origin(url: str) -> str:
    try:
        parsed = urlparse(url)
    except ValueError:
        return ''
    if not parsed.scheme or not parsed.netloc:
        return ''
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def is_external(href: str, page_url: str) -> bool:
    """True when an absolute href points away from the page's origin."""
    origin = get_origin(page_url)
    return not origin or get_origin(href) != origin


def is_valid_url(url: str, require_https: bool = False) -> bool:
    """Check that a string is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        result = urlparse(url)
    except ValueError:
        return False
    if result.scheme not in ('http', 'https') or not result.netloc:
        return False
    if require_https and result.scheme != 'https':
        return False
    return True


def extract_urls(text: str) -> List[str]:
    """Find http(s) URLs mentioned in free text, deduplicated in order of appearance."""
    if not text:
        return []
    urls = []
    for match in URL_IN_TEXT_RE.findall(text):
        url = match.rstrip(URL_TRAILING_PUNCTUATION)
        if is_valid_url(url) and url not in urls:
            urls.append(url)
    return urls


def extract_emails(html: str, limit: int = 5) -> List[str]:
    """Email-like tokens in document order, at most `limit`."""
    if not html:
        return []
    return [m.group(0) for m in islice(EMAIL_RE.finditer(html), limit)]


def extract_phone_numbers(html: str, limit: int = 5) -> List[str]:
    """Digit-dense phone-like tokens; a token needs 4+ consecutive digits after trimming."""
    if not html:
        return []
    candidates = (m.group(0).strip() for m in PHONE_RE.finditer(html))
    return list(islice((p for p in candidates if DIGIT_RUN_RE.search(p)), limit))


def parse_json(text: Any) -> ParseOutcome:
    """Parse a JSON document without raising; failures are reported in the outcome."""
    if text is None:
        return ParseOutcome(error='no content')
    try:
        return ParseOutcome(value=json.loads(text))
    except (TypeError, ValueError) as e:
        return ParseOutcome(error=str(e))


def json_serialize(obj: Any, **kwargs) -> str:
    """
    JSON serialization with support for:
    - Dataclasses (and objects exposing to_dict)
    - Datetime objects
    - Sets
    """
    def default_serializer(o):
        if callable(getattr(o, 'to_dict', None)):
            return o.to_dict()
        elif is_dataclass(o):
            return {k: v for k, v in asdict(o).items()
                    if not k.startswith('_') and v is not None}
        elif hasattr(o, 'isoformat'):
            return o.isoformat()
        elif isinstance(o, set):
            return list(o)
        return str(o)

    if 'default' not in kwargs:
        kwargs['default'] = default_serializer
    kwargs.setdefault('ensure_ascii', False)

    return json.dumps(obj, **kwargs)
