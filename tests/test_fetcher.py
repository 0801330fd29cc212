import pytest
import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from conftest import FakeHTTPResponse, FakeSession
from enhancer.utils.scraping.fetcher import DEFAULT_HEADERS, FetchOptions, PageFetcher, create_session

URL = "https://bakery.example.com/"

PAGE = """
<html lang="zh-HK"><head><title>Sunrise Bakery</title></head>
<body><article><p>{}</p></article></body></html>
""".format(" ".join(f"Fresh{i} bread{i} daily{i}." for i in range(40)))


def test_permanent_404_returns_error_variant_after_three_attempts(sleeps):
    session = FakeSession(FakeHTTPResponse(status_code=404, text="not found"))
    result = PageFetcher(session=session).fetch(URL)

    assert len(session.calls) == 3
    assert not result.ok
    assert "404" in result.error
    assert result.content == ""
    assert result.content_quality_score == 0
    assert result.status_code is None
    assert result.retry_count == 3
    assert sleeps == [2, 4]


def test_backoff_delays_are_non_decreasing_and_capped(sleeps):
    session = FakeSession(requests.ConnectionError("connection refused"))
    result = PageFetcher(FetchOptions(max_attempts=6), session=session).fetch(URL)

    assert len(session.calls) == 6
    assert result.retry_count == 6
    assert sleeps == [2, 4, 8, 10, 10]
    assert all(a <= b for a, b in zip(sleeps, sleeps[1:]))
    assert "connection refused" in result.error


def test_recovers_after_transient_failure(sleeps):
    session = FakeSession(
        requests.Timeout("read timed out"),
        FakeHTTPResponse(status_code=200, text=PAGE),
    )
    result = PageFetcher(session=session).fetch(URL)

    assert result.ok
    assert len(session.calls) == 2
    assert sleeps == [2]
    assert result.status_code == 200
    assert result.title == "Sunrise Bakery"
    assert result.language == "zh-HK"
    assert result.charset == "UTF-8"
    assert result.content.startswith("Fresh0 bread0 daily0.")


def test_non_2xx_success_range_is_rejected(sleeps):
    session = FakeSession(
        FakeHTTPResponse(status_code=500),
        FakeHTTPResponse(status_code=204, text=PAGE),
    )
    result = PageFetcher(session=session).fetch(URL)
    assert result.ok
    assert result.status_code == 204


def test_request_uses_browser_headers_and_timeout(sleeps):
    session = FakeSession(FakeHTTPResponse(text=PAGE))
    PageFetcher(FetchOptions(timeout=7), session=session).fetch(URL)

    _, kwargs = session.calls[0]
    assert kwargs["timeout"] == 7
    assert kwargs["headers"]["User-Agent"].startswith("Mozilla/5.0")
    for header in ("Referer", "Sec-Fetch-Dest", "Sec-Fetch-Mode", "Sec-Fetch-Site", "Cache-Control"):
        assert header in kwargs["headers"]


def test_create_session_caps_redirects():
    session = create_session()
    assert session.max_redirects == 5
    assert session.headers["User-Agent"] == DEFAULT_HEADERS["User-Agent"]


def test_error_variant_serializes_compactly(sleeps):
    session = FakeSession(FakeHTTPResponse(status_code=403))
    data = PageFetcher(session=session).fetch(URL).to_dict()
    assert set(data) == {"url", "error", "title", "content", "content_quality_score", "timestamp", "retry_count"}
    assert data["retry_count"] == 3


CHINESE_PAGE = """
<html lang="zh-HK"><head>{meta}<title>麵包店</title></head>
<body><article><p>{}</p><a href="mailto:hello@bakery.example.com">聯絡我們</a></article></body></html>
""".replace("{}", "我們每天清晨新鮮烘焙麵包和蛋糕，歡迎光臨旺角分店。" * 20)


def http_response(body, content_type):
    response = requests.Response()
    response.status_code = 200
    response.url = URL
    response._content = body
    response.headers = CaseInsensitiveDict({"Content-Type": content_type})
    response.encoding = get_encoding_from_headers(response.headers)
    return response


@pytest.mark.parametrize("meta", ['<meta charset="utf-8">', ""])
def test_utf8_page_without_header_charset_is_not_garbled(sleeps, meta):
    body = CHINESE_PAGE.replace("{meta}", meta).encode("utf-8")
    session = FakeSession(http_response(body, "text/html"))
    result = PageFetcher(session=session).fetch(URL)

    assert result.ok
    assert result.title == "麵包店"
    assert result.content.startswith("我們每天清晨新鮮烘焙麵包和蛋糕")
    assert result.charset == "UTF-8"


def test_header_charset_takes_precedence_over_meta(sleeps):
    body = CHINESE_PAGE.replace("{meta}", '<meta charset="big5">').encode("utf-8")
    session = FakeSession(http_response(body, "text/html; charset=UTF-8"))
    result = PageFetcher(session=session).fetch(URL)

    assert result.title == "麵包店"
    assert result.charset == "UTF-8"
