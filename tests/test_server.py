import asyncio
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, AsyncMock
from aioresponses import aioresponses

import server # Import to make sure app is loaded
from server import app
from linuxfr_epub.core.settings import Settings

client = TestClient(app)

@pytest.fixture(autouse=True)
def default_settings():
    previous = app.state.settings
    app.state.settings = Settings()
    yield app.state.settings
    app.state.settings = previous

def test_status():
    response = client.get("/status")
    assert response.status_code == 200
    assert response.text == "OK"
    assert response.headers["content-type"].startswith("text/plain")

@patch("server.core.build_epub", new_callable=AsyncMock)
def test_content_endpoint(mock_build):
    mock_build.return_value = (b"PK\x03\x04epub", "https://linuxfr.org/news/foo")

    response = client.get("/news/foo.epub")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/epub+zip"
    assert response.headers["link"] == '<https://linuxfr.org/news/foo>; rel="canonical"'
    assert response.content == b"PK\x03\x04epub"
    args, kwargs = mock_build.call_args
    assert args[0] == "/news/foo.epub"

@pytest.mark.parametrize("path", [
    "/users/alice/journaux/mon-journal.epub",
    "/forums/general/posts/une-question.epub",
    "/sondages/le-meilleur-editeur.epub",
    "/suivi/un-bug.epub",
    "/wiki/accueil.epub",
])
@patch("server.core.build_epub", new_callable=AsyncMock)
def test_all_content_routes(mock_build, path):
    mock_build.return_value = (b"PK", "https://linuxfr.org/x")
    assert client.get(path).status_code == 200
    assert mock_build.call_args[0][0] == path

def test_unknown_route():
    assert client.get("/news/foo.pdf").status_code == 404
    assert client.get("/images/foo.epub").status_code == 404

def test_upstream_404_is_not_found():
    with aioresponses() as m:
        m.get("https://linuxfr.org/news/absent", status=404)
        with patch("linuxfr_epub.core.converter.EpubPackager") as packager:
            response = client.get("/news/absent.epub")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}
    packager.assert_not_called()

def test_page_without_article_is_not_found():
    with aioresponses() as m:
        m.get("https://linuxfr.org/wiki/vide", status=200, body="<html><body><p>rien</p></body></html>")
        response = client.get("/wiki/vide.epub")
    assert response.status_code == 404

def test_poll_fetches_results():
    with aioresponses() as m:
        m.get("https://linuxfr.org/sondages/editeur?results=1", status=404)
        response = client.get("/sondages/editeur.epub")
        requested = [str(url) for (_, url) in m.requests]
    assert response.status_code == 404
    assert requested == ["https://linuxfr.org/sondages/editeur?results=1"]

def test_deadline_exceeded(default_settings):
    default_settings.request_timeout = 0.05

    async def slow(path, settings):
        await asyncio.sleep(5)

    with patch("server.core.build_epub", side_effect=slow):
        response = client.get("/news/lent.epub")
    assert response.status_code == 504
