import pytest
import aiohttp
from unittest.mock import patch
from aioresponses import aioresponses

from linuxfr_epub.core.session import fetch_article, fetch_text, retry_after
from linuxfr_epub.models import FetchError, NotFoundError, MAX_RETRY_WAIT
from conftest import ARTICLE_PAGE

URL = "https://linuxfr.org/news/sortie-de-linux-6-8"

@pytest.mark.asyncio
async def test_fetch_article_success():
    with aioresponses() as m:
        m.get(URL, status=200, body=ARTICLE_PAGE)
        async with aiohttp.ClientSession() as session:
            page = await fetch_article(session, URL)
    assert page.url == URL
    assert page.article.name == "article"
    assert page.article.get("id") == "news-42"
    page.release()

@pytest.mark.asyncio
async def test_fetch_article_404():
    with aioresponses() as m:
        m.get(URL, status=404)
        async with aiohttp.ClientSession() as session:
            with pytest.raises(FetchError):
                await fetch_article(session, URL)

@pytest.mark.asyncio
async def test_fetch_article_without_article_node():
    with aioresponses() as m:
        m.get(URL, status=200, body="<html><body><div id='contents'><p>Vide</p></div></body></html>")
        async with aiohttp.ClientSession() as session:
            with pytest.raises(NotFoundError):
                await fetch_article(session, URL)

@pytest.mark.asyncio
async def test_fetch_text_retries_server_errors():
    with aioresponses() as m:
        m.get(URL, status=503)
        m.get(URL, status=200, body="ok")
        with patch("asyncio.sleep", return_value=None) as sleep:
            async with aiohttp.ClientSession() as session:
                assert await fetch_text(session, URL) == "ok"
        assert sleep.called

@pytest.mark.asyncio
async def test_fetch_text_gives_up():
    with aioresponses() as m:
        m.get(URL, status=502, repeat=True)
        with patch("asyncio.sleep", return_value=None):
            async with aiohttp.ClientSession() as session:
                with pytest.raises(FetchError, match="HTTP 502"):
                    await fetch_text(session, URL)

@pytest.mark.asyncio
async def test_fetch_text_transport_error():
    with aioresponses() as m:
        m.get(URL, exception=aiohttp.ClientConnectionError("refused"), repeat=True)
        with patch("asyncio.sleep", return_value=None):
            async with aiohttp.ClientSession() as session:
                with pytest.raises(FetchError):
                    await fetch_text(session, URL)

@pytest.mark.asyncio
async def test_fetch_text_rate_limited_with_http_date():
    with aioresponses() as m:
        m.get(URL, status=429, headers={"Retry-After": "Wed, 21 Oct 2099 07:28:00 GMT"}, repeat=True)
        with patch("asyncio.sleep", return_value=None) as sleep:
            async with aiohttp.ClientSession() as session:
                with pytest.raises(FetchError, match="HTTP 429"):
                    await fetch_text(session, URL)
    waits = [call.args[0] for call in sleep.call_args_list]
    assert waits and all(0 <= w <= MAX_RETRY_WAIT for w in waits)

@pytest.mark.asyncio
async def test_fetch_text_rate_limit_then_success():
    with aioresponses() as m:
        m.get(URL, status=429, headers={"Retry-After": "3600"})
        m.get(URL, status=200, body="ok")
        with patch("asyncio.sleep", return_value=None) as sleep:
            async with aiohttp.ClientSession() as session:
                assert await fetch_text(session, URL) == "ok"
    sleep.assert_called_once_with(MAX_RETRY_WAIT)

@pytest.mark.parametrize("value, expected", [
    (None, 0.5),
    ("2", 2),
    ("-3", 0.5),
    ("soon", 0.5),
    ("Wed, 21 Oct 2015 07:28:00 GMT", 0.5),
    ("Wed, 21 Oct 2099 07:28:00 GMT", MAX_RETRY_WAIT),
])
def test_retry_after(value, expected):
    assert retry_after(value, 0.5) == expected
