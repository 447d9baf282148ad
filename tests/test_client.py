from __future__ import annotations

import pytest
import requests

from curio_feed.wikipedia.client import WikipediaClient
from curio_feed.wikipedia.errors import (
    DecodeError,
    EmptyResponseError,
    HTTPStatusError,
    InvalidRequestError,
    TransportError,
)
from stubs import FakeResponse, FakeSession, summary_json


def _client(wikipedia_settings, handler) -> tuple[WikipediaClient, FakeSession]:
    session = FakeSession(handler)
    return WikipediaClient(wikipedia_settings, session=session), session


def test_random_summary_request(wikipedia_settings) -> None:
    client, session = _client(wikipedia_settings, lambda url, params: FakeResponse(payload=summary_json(pageid=5)))

    summary = client.fetch_random_summary()

    assert summary.id == "5"
    assert session.calls == [
        {"url": "https://wiki.test/api/rest_v1/page/random/summary", "params": None, "timeout": 5}
    ]


def test_summary_title_is_path_encoded(wikipedia_settings) -> None:
    client, session = _client(wikipedia_settings, lambda url, params: FakeResponse(payload=summary_json(title="AC/DC")))

    client.fetch_summary("AC/DC")
    client.fetch_summary("The Starry Night")

    assert session.calls[0]["url"] == "https://wiki.test/api/rest_v1/page/summary/AC%2FDC"
    assert session.calls[1]["url"] == "https://wiki.test/api/rest_v1/page/summary/The_Starry_Night"


def test_empty_title_is_an_invalid_request(wikipedia_settings) -> None:
    client, session = _client(wikipedia_settings, lambda url, params: FakeResponse(payload={}))

    with pytest.raises(InvalidRequestError):
        client.fetch_summary("  ")
    with pytest.raises(InvalidRequestError):
        client.fetch_page_html("")
    assert session.calls == []


def test_search_parameters(wikipedia_settings) -> None:
    payload = {"query": {"search": [{"pageid": 1, "title": "Mona Lisa"}]}}
    client, session = _client(wikipedia_settings, lambda url, params: FakeResponse(payload=payload))

    assert client.search("deepcat:Paintings", limit=20, offset=140) == ["Mona Lisa"]

    call = session.calls[0]
    assert call["url"] == "https://wiki.test/w/api.php"
    assert call["params"]["action"] == "query"
    assert call["params"]["list"] == "search"
    assert call["params"]["srsearch"] == "deepcat:Paintings"
    assert call["params"]["srnamespace"] == "0"
    assert call["params"]["srlimit"] == "20"
    assert call["params"]["sroffset"] == "140"


def test_page_html(wikipedia_settings) -> None:
    responses = iter(
        [
            FakeResponse(payload={"parse": {"title": "X", "text": {"*": "<div>body</div>"}}}),
            FakeResponse(payload={"error": {"code": "missingtitle"}}),
        ]
    )
    client, session = _client(wikipedia_settings, lambda url, params: next(responses))

    assert client.fetch_page_html("X") == "<div>body</div>"
    assert client.fetch_page_html("Missing") is None
    assert session.calls[0]["params"]["action"] == "parse"
    assert session.calls[0]["params"]["page"] == "X"


def test_non_success_status(wikipedia_settings) -> None:
    client, _ = _client(wikipedia_settings, lambda url, params: FakeResponse(status_code=404, payload={"type": "not_found"}))

    with pytest.raises(HTTPStatusError) as excinfo:
        client.fetch_summary("Nowhere")
    assert excinfo.value.status_code == 404


def test_empty_body(wikipedia_settings) -> None:
    client, _ = _client(wikipedia_settings, lambda url, params: FakeResponse(content=b""))

    with pytest.raises(EmptyResponseError):
        client.fetch_random_summary()


def test_invalid_json(wikipedia_settings) -> None:
    client, _ = _client(wikipedia_settings, lambda url, params: FakeResponse(content=b"<html>oops</html>"))

    with pytest.raises(DecodeError) as excinfo:
        client.fetch_random_summary()
    assert "not JSON" in str(excinfo.value)


def test_unexpected_shape(wikipedia_settings) -> None:
    client, _ = _client(wikipedia_settings, lambda url, params: FakeResponse(payload={"title": "only"}))

    with pytest.raises(DecodeError):
        client.fetch_random_summary()


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_failures_are_wrapped(wikipedia_settings, error) -> None:
    def handler(url, params):
        raise error

    client, _ = _client(wikipedia_settings, handler)

    with pytest.raises(TransportError) as excinfo:
        client.fetch_random_summary()
    assert excinfo.value.cause is error
    assert excinfo.value.__cause__ is error


def test_malformed_url_is_an_invalid_request(wikipedia_settings) -> None:
    def handler(url, params):
        raise requests.exceptions.MissingSchema("no scheme")

    client, _ = _client(wikipedia_settings, handler)

    with pytest.raises(InvalidRequestError):
        client.fetch_random_summary()


def test_default_session_identifies_itself(wikipedia_settings) -> None:
    client = WikipediaClient(wikipedia_settings)
    try:
        assert client._session.headers["User-Agent"] == "CurioTests/1.0"
        assert client._session.headers["Accept"] == "application/json"
    finally:
        client.close()
