"""Tests for the robots policy, result gate, content extractor and search client."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from salsa_finder.discovery.content_extractor import ContentExtractor, html_to_text
from salsa_finder.discovery.result_gate import GateDecision, ResultGate, RobotsPolicy
from salsa_finder.discovery.search_client import GoogleSearchClient
from salsa_finder.exceptions import SearchProviderError

ROBOTS = """
User-agent: TanzpartyBot
Disallow: /private/

User-agent: *
Disallow: /
"""


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRobotsPolicy:
    """Test RobotsPolicy.is_allowed."""

    @pytest.mark.asyncio
    async def test_rules_for_our_agent(self, config):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, text=ROBOTS)

        async with client_for(handler) as http_client:
            policy = RobotsPolicy(config, http_client)
            assert await policy.is_allowed("https://tanz.de/events/salsa")
            assert not await policy.is_allowed("https://tanz.de/private/list")

        assert requested[0] == "https://tanz.de/robots.txt"

    @pytest.mark.asyncio
    async def test_missing_robots_allows(self, config):
        async with client_for(lambda request: httpx.Response(404)) as http_client:
            assert await RobotsPolicy(config, http_client).is_allowed("https://tanz.de/x")

    @pytest.mark.asyncio
    async def test_transport_error_allows(self, config):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with client_for(handler) as http_client:
            assert await RobotsPolicy(config, http_client).is_allowed("https://tanz.de/x")

    @pytest.mark.asyncio
    async def test_cached_body_skips_fetch(self, config):
        redis_client = AsyncMock()
        redis_client.get.return_value = "User-agent: *\nDisallow: /"

        def handler(request):
            raise AssertionError("robots.txt should come from the cache")

        async with client_for(handler) as http_client:
            policy = RobotsPolicy(config, http_client, redis_client)
            assert not await policy.is_allowed("https://tanz.de/x")

        redis_client.get.assert_awaited_once_with("robots:https://tanz.de")

    @pytest.mark.asyncio
    async def test_fetched_body_is_cached(self, config):
        redis_client = AsyncMock()
        redis_client.get.return_value = None

        async with client_for(lambda request: httpx.Response(200, text=ROBOTS)) as http_client:
            await RobotsPolicy(config, http_client, redis_client).is_allowed("https://tanz.de/x")

        redis_client.set.assert_awaited_once_with("robots:https://tanz.de", ROBOTS, ex=86400)

    @pytest.mark.asyncio
    async def test_cache_failure_ignored(self, config):
        redis_client = AsyncMock()
        redis_client.get.side_effect = ConnectionError("redis down")
        redis_client.set.side_effect = ConnectionError("redis down")

        async with client_for(lambda request: httpx.Response(200, text=ROBOTS)) as http_client:
            assert await RobotsPolicy(config, http_client, redis_client).is_allowed("https://tanz.de/x")


class TestResultGate:
    """Test ResultGate.check."""

    @pytest.fixture
    def robots(self):
        robots = AsyncMock(spec=RobotsPolicy)
        robots.is_allowed.return_value = True
        return robots

    @pytest.mark.asyncio
    async def test_allowed(self, config, event_repository, scraped_url_repository, robots):
        gate = ResultGate(config, event_repository, scraped_url_repository, robots)
        assert await gate.check("https://tanz.de/x") == GateDecision(allowed=True)

    @pytest.mark.asyncio
    async def test_recent_events_from_source(self, config, event_repository, scraped_url_repository, robots):
        event_repository.recent_sources.add("https://tanz.de/x")
        gate = ResultGate(config, event_repository, scraped_url_repository, robots)

        decision = await gate.check("https://tanz.de/x")

        assert decision == GateDecision(allowed=False, reason="recent")
        robots.is_allowed.assert_not_called()

    @pytest.mark.asyncio
    async def test_recently_scraped_url(self, config, event_repository, scraped_url_repository, robots):
        scraped_url_repository.recent.add("https://tanz.de/x")
        gate = ResultGate(config, event_repository, scraped_url_repository, robots)

        assert (await gate.check("https://tanz.de/x")).reason == "recent"

    @pytest.mark.asyncio
    async def test_zero_window_disables_recency(self, config, event_repository, scraped_url_repository, robots):
        event_repository.recent_sources.add("https://tanz.de/x")
        gate = ResultGate(config.model_copy(update={"recency_window_days": 0}),
                          event_repository, scraped_url_repository, robots)

        assert (await gate.check("https://tanz.de/x")).allowed

    @pytest.mark.asyncio
    async def test_robots_blocked(self, config, event_repository, scraped_url_repository, robots):
        robots.is_allowed.return_value = False
        gate = ResultGate(config, event_repository, scraped_url_repository, robots)

        assert await gate.check("https://tanz.de/x") == GateDecision(allowed=False, reason="robots_blocked")


PAGE = """
<html><head><title>Salsa</title><script>var x = "tracking";</script></head>
<body>
  <nav>Home | Kontakt</nav>
  <div class="cookie">Wir nutzen Cookies</div>
  <main>
    <h1>Salsa Party</h1>
    <p>Jeden   Freitag
       ab 21 Uhr</p>
    <aside>Werbung</aside>
  </main>
  <footer>Impressum</footer>
</body></html>
"""


class TestContentExtractor:
    """Test ContentExtractor.extract."""

    def test_html_to_text_uses_main_and_drops_noise(self):
        assert html_to_text(PAGE) == "Salsa Party Jeden Freitag ab 21 Uhr"

    def test_falls_back_to_body(self):
        assert html_to_text("<html><body><div>Bachata Social</div></body></html>") == "Bachata Social"

    def test_selector_order(self):
        html = '<body><article>Artikel</article><div class="content">Inhalt</div></body>'
        assert html_to_text(html) == "Inhalt"

    @pytest.mark.asyncio
    async def test_extract_sends_user_agent(self, config):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            return httpx.Response(200, text=PAGE)

        async with client_for(handler) as http_client:
            text = await ContentExtractor(config, http_client).extract("https://tanz.de/salsa")

        assert text == "Salsa Party Jeden Freitag ab 21 Uhr"
        assert seen["ua"] == config.user_agent

    @pytest.mark.asyncio
    async def test_truncation(self, config):
        body = "<main>" + "salsa " * 5000 + "</main>"
        short = config.model_copy(update={"max_content_chars": 100})

        async with client_for(lambda request: httpx.Response(200, text=body)) as http_client:
            text = await ContentExtractor(short, http_client).extract("https://tanz.de/salsa")

        assert len(text) == 103
        assert text.endswith("...")

    @pytest.mark.asyncio
    async def test_http_error_gives_none(self, config):
        async with client_for(lambda request: httpx.Response(500)) as http_client:
            assert await ContentExtractor(config, http_client).extract("https://tanz.de/salsa") is None

    @pytest.mark.asyncio
    async def test_empty_page_gives_none(self, config):
        html = "<html><body><script>1</script></body></html>"
        async with client_for(lambda request: httpx.Response(200, text=html)) as http_client:
            assert await ContentExtractor(config, http_client).extract("https://tanz.de/salsa") is None


SEARCH_PAYLOAD = {
    "items": [
        {"link": "https://tanz.de/a", "snippet": "Salsa Party"},
        {"title": "no link"},
        {"link": "https://tanz.de/b"},
    ]
}


class TestGoogleSearchClient:
    """Test GoogleSearchClient.search."""

    @pytest.mark.asyncio
    async def test_results_in_order(self, config):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=SEARCH_PAYLOAD)

        async with client_for(handler) as http_client:
            results = await GoogleSearchClient(config, http_client).search("Salsa Veranstaltung Berlin site:.de")

        assert [r.url for r in results] == ["https://tanz.de/a", "https://tanz.de/b"]
        assert results[0].snippet == "Salsa Party"
        assert seen["params"]["q"] == "Salsa Veranstaltung Berlin site:.de"
        assert seen["params"]["cx"] == "test_cse_id"

    @pytest.mark.asyncio
    async def test_retries_rate_limit_then_succeeds(self, config):
        responses = [httpx.Response(429), httpx.Response(503), httpx.Response(200, json=SEARCH_PAYLOAD)]

        async with client_for(lambda request: responses.pop(0)) as http_client:
            with patch("salsa_finder.discovery.search_client.asyncio.sleep", new=AsyncMock()) as sleep:
                results = await GoogleSearchClient(config, http_client).search("q")

        assert len(results) == 2
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, config):
        async with client_for(lambda request: httpx.Response(500)) as http_client:
            with patch("salsa_finder.discovery.search_client.asyncio.sleep", new=AsyncMock()):
                with pytest.raises(SearchProviderError) as exc_info:
                    await GoogleSearchClient(config, http_client).search("q")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(403, json={"error": {"message": "quota"}})

        async with client_for(handler) as http_client:
            with pytest.raises(SearchProviderError):
                await GoogleSearchClient(config, http_client).search("q")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unconfigured(self, config):
        unconfigured = config.model_copy(update={"google_api_key": ""})
        async with client_for(lambda request: httpx.Response(200, json={})) as http_client:
            with pytest.raises(SearchProviderError):
                await GoogleSearchClient(unconfigured, http_client).search("q")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [[], {"items": "x"}, "just text"])
    async def test_malformed_body_raises_provider_error(self, config, payload):
        async with client_for(lambda request: httpx.Response(200, json=payload)) as http_client:
            with pytest.raises(SearchProviderError):
                await GoogleSearchClient(config, http_client).search("q")

    @pytest.mark.asyncio
    async def test_non_object_items_skipped(self, config):
        payload = {"items": ["https://tanz.de/x", None, {"link": 5}, {"link": "https://tanz.de/a", "snippet": 3}]}

        async with client_for(lambda request: httpx.Response(200, json=payload)) as http_client:
            results = await GoogleSearchClient(config, http_client).search("q")

        assert [(r.url, r.snippet) for r in results] == [("https://tanz.de/a", "")]

    @pytest.mark.asyncio
    async def test_no_items_key_means_no_results(self, config):
        async with client_for(lambda request: httpx.Response(200, json={"searchInformation": {}})) as http_client:
            assert await GoogleSearchClient(config, http_client).search("q") == []
