"""Tests for web search, with providers faked through httpx.MockTransport."""

import httpx
import pytest

from stephly.services.search import (
    DUCKDUCKGO_URL,
    GOOGLE_SEARCH_URL,
    SearchResult,
    SearchService,
    format_search_results,
    needs_web_search,
)

from conftest import run


def service(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SearchService(client=client, **kwargs)


@pytest.fixture(autouse=True)
def no_google_env(monkeypatch):
    monkeypatch.delenv("GOOGLE_SEARCH_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_SEARCH_ENGINE_ID", raising=False)


class TestNeedsWebSearch:

    @pytest.mark.parametrize("query", [
        "What is the capital of Ghana?",
        "bitcoin price",
        "latest news on fuel",
        "who was the first president",
    ])
    def test_factual_queries(self, query):
        assert needs_web_search(query)

    def test_plain_chat(self):
        assert not needs_web_search("thanks a lot")


class TestFormatSearchResults:

    def test_empty(self):
        assert format_search_results([]) == ""

    def test_numbered(self):
        text = format_search_results([
            SearchResult(title="A", snippet="first", link="https://a"),
            SearchResult(title="B", snippet="second", link="https://b"),
        ])
        assert "1. A" in text
        assert "2. B" in text
        assert "Source: https://b" in text


class TestProviderChain:

    def test_google_used_when_configured(self):
        def handler(request):
            assert request.url.params["q"] == "cedi rate"
            return httpx.Response(200, json={"items": [
                {"title": "Cedi", "snippet": "12 per dollar", "link": "https://g"},
            ]})

        results = run(service(handler, api_key="k", engine_id="e").search("cedi rate"))
        assert results == [SearchResult(title="Cedi", snippet="12 per dollar", link="https://g")]

    def test_google_skipped_without_key(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"Abstract": "Accra is the capital.", "Heading": "Ghana"})

        results = run(service(handler).search("capital of ghana"))
        assert results[0].snippet == "Accra is the capital."
        assert not any(url.startswith(GOOGLE_SEARCH_URL) for url in seen)

    def test_duckduckgo_related_topics(self):
        def handler(request):
            return httpx.Response(200, json={
                "Abstract": "",
                "RelatedTopics": [
                    {"Text": "Kumasi - city in Ghana", "FirstURL": "https://ddg/kumasi"},
                    {"Name": "group", "Topics": []},
                ],
            })

        results = run(service(handler).search("kumasi"))
        assert len(results) == 1
        assert results[0].title == "Kumasi"

    def test_falls_back_to_wikipedia(self):
        def handler(request):
            if str(request.url).startswith(DUCKDUCKGO_URL):
                return httpx.Response(500)
            return httpx.Response(200, json={
                "title": "Jollof rice",
                "extract": "A West African dish.",
                "content_urls": {"desktop": {"page": "https://wiki/jollof"}},
            })

        results = run(service(handler).search("jollof rice"))
        assert results[0].title == "Jollof rice"
        assert results[0].link == "https://wiki/jollof"

    def test_network_errors_never_raise(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        assert run(service(handler, api_key="k", engine_id="e").search("anything")) == []

    def test_max_results(self):
        def handler(request):
            return httpx.Response(200, json={"items": [
                {"title": str(i), "snippet": "s", "link": "l"} for i in range(10)
            ]})

        results = run(service(handler, api_key="k", engine_id="e", max_results=2).search("x"))
        assert len(results) == 2
