"""
Tests for the web search context provider.

HTTP is served by httpx.MockTransport; no network calls are made.
"""

import httpx
import pytest

from allergen_lookup.core.config import LookupConfig
from allergen_lookup.core.errors import SynthesisTransportFault
from allergen_lookup.external.search_client import NO_CONTEXT, SearchContextProvider, format_context


def provider_for(handler, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("engine_id", "test-cx")
    return SearchContextProvider(LookupConfig(search_num_results=3), client=client, **kwargs)


class TestFormatContext:
    def test_blocks_joined(self):
        context = format_context([
            {"title": "Niacinamide", "snippet": "Vitamin B3."},
            {"title": "Uses", "snippet": "Brightening."},
        ])
        assert context == "Title: Niacinamide\nContent: Vitamin B3.\n\n---\n\nTitle: Uses\nContent: Brightening."

    def test_no_items(self):
        assert format_context([]) == NO_CONTEXT

    def test_empty_items_skipped(self):
        assert format_context([{"link": "https://example.com"}]) == NO_CONTEXT


class TestGatherContext:
    def test_request_parameters(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json={"items": [{"title": "Niacinamide", "snippet": "Vitamin B3."}]})

        context = provider_for(handler).gather_context("niacinamide")
        assert context == "Title: Niacinamide\nContent: Vitamin B3."
        assert seen["key"] == "test-key"
        assert seen["cx"] == "test-cx"
        assert seen["num"] == "3"
        assert seen["q"].startswith("niacinamide ")

    def test_no_results_is_not_an_error(self):
        context = provider_for(lambda request: httpx.Response(200, json={})).gather_context("xyzzy")
        assert context == NO_CONTEXT

    def test_http_error_is_a_fault(self):
        provider = provider_for(lambda request: httpx.Response(500, json={"error": "backend"}))
        with pytest.raises(SynthesisTransportFault):
            provider.gather_context("niacinamide")

    def test_connection_error_is_a_fault(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SynthesisTransportFault):
            provider_for(handler).gather_context("niacinamide")

    def test_invalid_json_is_a_fault(self):
        provider = provider_for(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
        with pytest.raises(SynthesisTransportFault):
            provider.gather_context("niacinamide")

    @pytest.mark.parametrize("body", [[1, 2], None, "items"])
    def test_non_object_payload_is_a_fault(self, body):
        provider = provider_for(lambda request: httpx.Response(200, json=body))
        with pytest.raises(SynthesisTransportFault):
            provider.gather_context("niacinamide")

    @pytest.mark.parametrize("items", [[1, "two"], {"title": "Niacinamide"}, [{"title": "ok"}, None]])
    def test_malformed_items_are_a_fault(self, items):
        provider = provider_for(lambda request: httpx.Response(200, json={"items": items}))
        with pytest.raises(SynthesisTransportFault):
            provider.gather_context("niacinamide")

    def test_null_items_means_no_results(self):
        provider = provider_for(lambda request: httpx.Response(200, json={"items": None}))
        assert provider.gather_context("niacinamide") == NO_CONTEXT

    def test_missing_credentials_is_a_fault(self, monkeypatch):
        monkeypatch.delenv("SEARCH_API_KEY", raising=False)
        monkeypatch.delenv("SEARCH_ENGINE_ID", raising=False)
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        provider = provider_for(handler, api_key=None, engine_id=None)
        with pytest.raises(SynthesisTransportFault):
            provider.gather_context("niacinamide")
        assert calls == []
