import pytest

from enhancer.utils.scraping.utils import (
    clean_text,
    extract_emails,
    extract_phone_numbers,
    extract_urls,
    is_external,
    resolve_url,
)

CLEAN_TEXT_CASES = [
    ("  hello   world \n\t again ", "hello world again"),
    ("zero\u200bwidth\ufeff chars", "zerowidth chars"),
    ("wait,,, what??", "wait, what?"),
    ("好的。。。真的！！", "好的。真的！"),
    ("ellipsis... stays", "ellipsis... stays"),
    ("", ""),
]


@pytest.mark.parametrize("raw,expected", CLEAN_TEXT_CASES)
def test_clean_text(raw, expected):
    assert clean_text(raw) == expected


RESOLVE_CASES = [
    ("/about", "https://example.com/team/", "https://example.com/about"),
    ("photo.jpg", "https://example.com/team/", "https://example.com/team/photo.jpg"),
    ("https://other.org/x", "https://example.com/", "https://other.org/x"),
    ("//cdn.example.com/a.png", "https://example.com/", "https://cdn.example.com/a.png"),
]


@pytest.mark.parametrize("url,base,expected", RESOLVE_CASES)
def test_resolve_url(url, base, expected):
    assert resolve_url(url, base) == expected


def test_resolve_url_returns_malformed_input_unchanged():
    assert resolve_url("http://[broken", "https://example.com/") == "http://[broken"


def test_is_external():
    assert not is_external("https://example.com/about", "https://example.com/")
    assert is_external("https://other.org/", "https://example.com/")
    assert not is_external("HTTPS://Example.com/Menu", "https://example.com/")


@pytest.mark.parametrize("href", [
    "https://example.com.evil.org/x",
    "https://example.com:8443/",
    "http://example.com/",
    "https://shop.example.com/",
])
def test_lookalike_hosts_are_external(href):
    assert is_external(href, "https://example.com/")


def test_extract_urls_deduplicates_and_strips_punctuation():
    text = ("See https://example.com/about, and https://example.com/about. "
            "Also (https://shop.example.org/items)!")
    assert extract_urls(text) == ["https://example.com/about", "https://shop.example.org/items"]


def test_extract_urls_without_links():
    assert extract_urls("no links here") == []


def test_extract_emails_respects_limit():
    html = " ".join(f"user{i}@example.com" for i in range(8))
    emails = extract_emails(html, limit=5)
    assert emails == [f"user{i}@example.com" for i in range(5)]


def test_extract_phone_numbers_needs_digit_run():
    html = "<p>Call +852 91234567 now</p><p>(12) 34-56 78</p>"
    phones = extract_phone_numbers(html)
    assert phones == ["+852 91234567"]
