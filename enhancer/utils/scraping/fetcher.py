"""
Web page fetching with browser-like headers and exponential backoff.
"""
import codecs
from dataclasses import dataclass, field
from typing import Dict, Optional

import backoff
import requests
from bs4 import BeautifulSoup
from bs4.dammit import EncodingDetector

from .extractor import ExtractionOptions, extract_page
from .models import FetchResult
from .logger import get_logger

logger = get_logger(__name__)

# Default headers to mimic a browser navigating from a search result
DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'zh-HK,zh;q=0.9,en;q=0.8',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
    'Referer': 'https://www.google.com/',
    'Sec-Fetch-Dest': 'document',
    'Sec-Fetch-Mode': 'navigate',
    'Sec-Fetch-Site': 'none',
    'Cache-Control': 'no-cache',
}


@dataclass
class FetchOptions:
    """Configuration options for page fetching."""
    timeout: float = 10.0
    max_attempts: int = 3
    max_redirects: int = 5
    backoff_factor: float = 2.0  # seconds before the second attempt, doubled afterwards
    max_backoff: float = 10.0
    headers: Optional[Dict[str, str]] = None
    extraction: ExtractionOptions = field(default_factory=ExtractionOptions)

    def __post_init__(self) -> None:
        if self.headers is None:
            self.headers = DEFAULT_HEADERS.copy()


class FetchError(requests.RequestException):
    """Raised for responses outside the 2xx range."""


def create_session(options: Optional[FetchOptions] = None) -> requests.Session:
    """
    Create a requests session with the browser header set and redirect cap.

    Retries are handled by PageFetcher, so no retrying adapter is mounted here.
    """
    options = options or FetchOptions()
    session = requests.Session()
    session.headers.update(options.headers)
    session.max_redirects = options.max_redirects
    return session


def response_encoding(response: requests.Response) -> str:
    """
    Pick the encoding used to decode a page.

    A charset in the Content-Type header wins. Otherwise requests would fall
    back to ISO-8859-1, so the page's own <meta> declaration is used, then
    the encoding detected from the body.
    """
    content_type = response.headers.get('content-type', '').lower()
    if 'charset' in content_type and response.encoding:
        return response.encoding
    declared = EncodingDetector.find_declared_encoding(response.content, is_html=True)
    encoding = declared or response.apparent_encoding or 'utf-8'
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        logger.debug(f"Unknown encoding {encoding!r}, decoding as UTF-8")
        return 'utf-8'


class PageFetcher:
    """
    Fetches a URL and turns the page into a FetchResult.

    `fetch` never raises: after the last failed attempt it returns the error
    variant of FetchResult.
    """

    def __init__(self, options: Optional[FetchOptions] = None, session: Optional[requests.Session] = None):
        self.options = options or FetchOptions()
        self.session = session or create_session(self.options)

    def _get(self, url: str) -> requests.Response:
        response = self.session.get(
            url,
            headers=self.options.headers,
            timeout=self.options.timeout,
            allow_redirects=True,
        )
        if not 200 <= response.status_code < 300:
            raise FetchError(f"HTTP {response.status_code} for {url}", response=response)
        return response

    def fetch(self, url: str) -> FetchResult:
        """
        Fetch a page with retries.

        Args:
            url: Absolute URL to fetch

        Returns:
            FetchResult with page content and metadata, or its error variant
        """
        attempts = {'count': 0}

        def log_backoff(details):
            logger.warning(
                f"Attempt {details['tries']}/{self.options.max_attempts} for {url} failed, "
                f"retrying in {details['wait']:.1f}s: {details.get('exception', '')}"
            )

        @backoff.on_exception(
            backoff.expo,
            requests.RequestException,
            max_tries=self.options.max_attempts,
            jitter=None,
            factor=self.options.backoff_factor,
            max_value=self.options.max_backoff,
            on_backoff=log_backoff,
        )
        def _fetch() -> requests.Response:
            attempts['count'] += 1
            logger.info(f"Fetching {url} (attempt {attempts['count']}/{self.options.max_attempts})")
            return self._get(url)

        try:
            response = _fetch()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {url} after {attempts['count']} attempts: {e}")
            return FetchResult.failure(
                url,
                f"Failed after {attempts['count']} attempts: {e}",
                attempts['count'],
            )

        try:
            response.encoding = response_encoding(response)
            html = response.text
            soup = BeautifulSoup(html, 'html.parser')
            result = extract_page(
                html,
                url,
                options=self.options.extraction,
                status_code=response.status_code,
                encoding=response.encoding,
                soup=soup,
            )
        except Exception as e:
            logger.error(f"Failed to extract content from {url}: {e}")
            return FetchResult.failure(url, f"Content extraction failed: {e}", attempts['count'])

        logger.info(
            f"Fetched {url}: {result.full_content_length} chars, "
            f"quality score {result.content_quality_score:.2f}"
        )
        return result
