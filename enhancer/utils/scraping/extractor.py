"""
Main-content and metadata extraction from parsed HTML pages.

Content is picked by trying a priority-ordered list of container selectors,
stripping noise elements from a copy of each container, and keeping the
candidate with the highest quality score.
"""
import copy
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, List, Optional

from bs4 import BeautifulSoup, Tag

from .models import Candidate, ContactInfo, FetchResult, PageImage, PageLink
from .utils import (
    clean_text,
    extract_emails,
    extract_phone_numbers,
    is_external,
    parse_json,
    resolve_url,
)
from .logger import get_logger

logger = get_logger(__name__)

# Main content containers, highest priority first
PRIMARY_SELECTORS = [
    'main',
    '[role="main"]',
    '.main-content',
    '.content',
    'article',
    '.post-content',
    '.entry-content',
    '.article-content',
    '.blog-content',
    '.page-content',
    '#content',
    '#main',
    '.container .content',
    'body',
]

# Elements stripped from a container before its text is taken
NOISE_SELECTORS = [
    'script', 'style', 'nav', 'footer', 'header',
    '.ad', '.ads', '.advertisement', '.sidebar',
    '.navigation', '.menu', '.breadcrumb',
    '.social-share', '.comments', '.comment',
    '.popup', '.modal', '.overlay',
    '[class*="ad-"]', '[id*="ad-"]',
    '.cookie-notice', '.newsletter',
]

SENTENCE_ENDINGS = ('.', '!', '?', '。', '！', '？')


@dataclass
class ScoringOptions:
    """Thresholds and weights of the content quality heuristic."""
    min_content_length: int = 100
    min_word_count: int = 20
    max_duplicate_ratio: float = 0.8
    short_text_score: float = 0.2
    duplicate_text_score: float = 0.3
    length_norm: int = 1000
    length_weight: float = 0.5
    word_count_norm: int = 100
    word_count_weight: float = 0.3
    sentence_weight: float = 0.2


@dataclass
class ExtractionOptions:
    """Caps applied to everything extracted from a single page."""
    max_content_length: int = 30000
    max_links: int = 10
    max_images: int = 10
    max_structured_data: int = 3
    max_emails: int = 5
    max_phones: int = 5
    min_link_text_length: int = 3
    primary_selectors: List[str] = field(default_factory=lambda: list(PRIMARY_SELECTORS))
    noise_selectors: List[str] = field(default_factory=lambda: list(NOISE_SELECTORS))
    scoring: ScoringOptions = field(default_factory=ScoringOptions)


def score_content(text: str, options: Optional[ScoringOptions] = None) -> float:
    """
    Heuristic 0-1 confidence that a text block is genuine article content.

    Too short scores 0, too few words scores a low fixed value, highly
    repetitive text scores another fixed value; anything else is scored on
    length, word count and the presence of sentence punctuation.
    """
    options = options or ScoringOptions()
    if not text or len(text) < options.min_content_length:
        return 0.0

    words = [word for word in text.split() if len(word) > 1]
    if len(words) < options.min_word_count:
        return options.short_text_score

    unique_words = {word.lower() for word in words}
    duplicate_ratio = 1 - len(unique_words) / len(words)
    if duplicate_ratio > options.max_duplicate_ratio:
        return options.duplicate_text_score

    score = min(len(text) / options.length_norm, 1) * options.length_weight
    score += min(len(words), options.word_count_norm) / options.word_count_norm * options.word_count_weight
    if any(mark in text for mark in SENTENCE_ENDINGS):
        score += options.sentence_weight

    return min(max(score, 0.0), 1.0)


def extract_candidate(container: Tag, selector: str, options: ExtractionOptions) -> Candidate:
    """Copy a container, strip noise from the copy and score what is left."""
    clone = copy.copy(container)
    for noise_selector in options.noise_selectors:
        for element in clone.select(noise_selector):
            # nested matches are already gone with their ancestor
            if not element.decomposed:
                element.decompose()

    raw_text = clone.get_text(separator=' ').strip()
    text = clean_text(raw_text)
    return Candidate(
        selector=selector,
        raw_text=raw_text,
        text=text,
        score=score_content(text, options.scoring),
    )


def select_best_candidate(soup: BeautifulSoup, options: Optional[ExtractionOptions] = None) -> Candidate:
    """
    Fold over the selectors in priority order, keeping the best candidate.

    A later candidate only wins with a strictly higher score, so on ties the
    higher-priority selector is kept. When nothing scores above zero the
    result is an empty candidate.
    """
    options = options or ExtractionOptions()

    def keep_better(best: Candidate, selector: str) -> Candidate:
        container = soup.select_one(selector)
        if container is None:
            return best
        candidate = extract_candidate(container, selector, options)
        logger.debug(f"Candidate {selector!r}: {len(candidate.text)} chars, score {candidate.score:.2f}")
        if candidate.score > best.score and candidate.text:
            return candidate
        return best

    return reduce(keep_better, options.primary_selectors, Candidate(selector='', raw_text='', text=''))


def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip()
    return ''


def extract_links(soup: BeautifulSoup, url: str, options: ExtractionOptions) -> List[PageLink]:
    links = []
    for anchor in soup.find_all('a', href=True):
        if len(links) >= options.max_links:
            break
        text = anchor.get_text(' ', strip=True)
        href = resolve_url(anchor['href'], url)
        if not text or not href or len(text) < options.min_link_text_length:
            continue
        links.append(PageLink(text=text, href=href, is_external=is_external(href, url)))
    return links


def extract_images(soup: BeautifulSoup, url: str, options: ExtractionOptions) -> List[PageImage]:
    images = []
    for img in soup.find_all('img', src=True):
        if len(images) >= options.max_images:
            break
        src = resolve_url(img['src'].strip(), url)
        if not src:
            continue
        images.append(PageImage(
            alt=img.get('alt', ''),
            src=src,
            width=img.get('width'),
            height=img.get('height'),
        ))
    return images


def extract_structured_data(soup: BeautifulSoup, options: ExtractionOptions) -> List[Any]:
    """Parse embedded ld+json blocks; malformed blocks are logged and skipped."""
    structured_data = []
    for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
        if len(structured_data) >= options.max_structured_data:
            break
        outcome = parse_json(script.string or script.get_text())
        if outcome.ok:
            structured_data.append(outcome.value)
        else:
            logger.debug(f"Skipping malformed ld+json block: {outcome.error}")
    return structured_data


def detect_charset(soup: BeautifulSoup, encoding: Optional[str] = None) -> str:
    if encoding:
        return encoding.upper()
    meta = soup.find('meta', charset=True)
    if meta:
        return meta['charset'].strip().upper()
    return 'UTF-8'


def extract_page(
    html: str,
    url: str,
    options: Optional[ExtractionOptions] = None,
    status_code: Optional[int] = None,
    encoding: Optional[str] = None,
    soup: Optional[BeautifulSoup] = None,
) -> FetchResult:
    """
    Build a FetchResult from a page's HTML.

    Args:
        html: Raw HTML, also scanned for contact information
        url: URL the page was fetched from, used to resolve relative links
        options: Extraction caps and scoring thresholds
        status_code: HTTP status of the response
        encoding: Character encoding reported by the response
        soup: Already parsed document, parsed from `html` when omitted

    Returns:
        FetchResult with the best content and page metadata
    """
    options = options or ExtractionOptions()
    soup = soup if soup is not None else BeautifulSoup(html or '', 'html.parser')

    best = select_best_candidate(soup, options)

    title = soup.title.get_text(strip=True) if soup.title else ''
    meta_description = (_meta_content(soup, name='description')
                        or _meta_content(soup, property='og:description'))
    canonical = soup.find('link', rel='canonical', href=True)
    html_tag = soup.find('html')

    return FetchResult(
        url=url,
        canonical_url=(canonical['href'].strip() if canonical else '') or url,
        title=title,
        og_title=_meta_content(soup, property='og:title'),
        meta_description=meta_description,
        meta_keywords=_meta_content(soup, name='keywords'),
        content=best.text[:options.max_content_length],
        content_quality_score=best.score,
        full_content_length=len(best.text),
        links=extract_links(soup, url, options),
        images=extract_images(soup, url, options),
        contact_info=ContactInfo(
            emails=extract_emails(html, options.max_emails),
            phones=extract_phone_numbers(html, options.max_phones),
        ),
        structured_data=extract_structured_data(soup, options),
        status_code=status_code,
        language=(html_tag.get('lang') if html_tag else None) or 'unknown',
        charset=detect_charset(soup, encoding),
    )
