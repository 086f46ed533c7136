"""Tests for the Substack client and newsletter tools (no network)."""

import json

import httpx
import pytest

from core.substack import SubstackClient, normalize_substack_id, post_url
from tools import substack_tools

POSTS = [
    {
        "id": 101,
        "title": "Bitcoin explained",
        "subtitle": "A primer",
        "slug": "bitcoin-explained",
        "post_date": "2024-05-01T10:00:00.000Z",
        "type": "newsletter",
        "wordcount": 1200,
        "reaction_count": 40,
        "comment_count": 3,
        "audience": "everyone",
        "publication_id": 77,
        "canonical_url": "https://platformer.substack.com/p/bitcoin-explained",
        "body_html": "<p>Full body</p>",
        "truncated_body_text": "Full body",
    },
    {
        "id": 102,
        "title": "Weekly links",
        "subtitle": None,
        "slug": "weekly-links",
        "post_date": "2024-04-24T10:00:00.000Z",
        "type": "newsletter",
        "wordcount": 300,
        "reaction_count": 5,
        "comment_count": 0,
        "audience": "only_paid",
        "publication_id": 77,
        "truncated_body_text": "Links about ethereum",
    },
]


class Recorder:
    """MockTransport handler that records requests and serves canned routes."""

    def __init__(self, routes, status=200):
        self.routes = routes
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for path, payload in self.routes.items():
            if request.url.path == path:
                return httpx.Response(self.status, json=payload)
        return httpx.Response(404, json={"error": "not found"})


def _client(recorder):
    return SubstackClient(transport=httpx.MockTransport(recorder))


def _tool(make_invoker, client, name):
    invoker = make_invoker(client, source="substack", required="basicAccess")
    catalog = substack_tools.catalog(invoker)
    return next(descriptor for descriptor in catalog.descriptors if descriptor.name == name)


class TestNormalization:
    def test_subdomain_gets_substack_suffix(self):
        assert normalize_substack_id("platformer") == "platformer.substack.com"

    def test_domain_kept(self):
        assert normalize_substack_id("www.platformer.news") == "www.platformer.news"
        assert normalize_substack_id("platformer.substack.com") == "platformer.substack.com"

    def test_post_url(self):
        assert post_url("platformer", "hello") == "https://platformer.substack.com/p/hello"


class TestSubstackClient:
    """Direct client calls against a mocked transport."""

    @pytest.mark.asyncio
    async def test_recent_posts_request(self):
        recorder = Recorder({"/api/v1/archive": POSTS})
        posts = await _client(recorder).get_recent_posts("platformer", 2)

        assert [post["id"] for post in posts] == [101, 102]
        request = recorder.requests[0]
        assert request.url.host == "platformer.substack.com"
        assert request.url.params["sort"] == "new"
        assert request.url.params["limit"] == "2"
        assert "Mozilla" in request.headers["User-Agent"]

    @pytest.mark.asyncio
    async def test_malformed_archive_raises(self):
        """A non-list payload is an upstream failure, not an empty result."""
        recorder = Recorder({"/api/v1/archive": {"posts": POSTS}})
        with pytest.raises(ValueError, match="Unexpected response shape"):
            await _client(recorder).get_recent_posts("platformer")

    @pytest.mark.asyncio
    async def test_post_by_slug_checks_second_page(self):
        recorder = Recorder({"/api/v1/archive": POSTS[:1], "/api/v1/posts": POSTS[1:]})
        post = await _client(recorder).get_post_by_slug("platformer", "weekly-links")

        assert post["id"] == 102
        assert recorder.requests[-1].url.params["offset"] == "50"

    @pytest.mark.asyncio
    async def test_post_content(self):
        recorder = Recorder(
            {
                "/api/v1/posts/bitcoin-explained": {
                    "title": "Bitcoin explained",
                    "post_date": "2024-05-01",
                    "body_html": "<p>Full body</p>",
                    "canonical_url": "https://platformer.substack.com/p/bitcoin-explained",
                    "publishedBylines": [{"name": "Casey"}],
                }
            }
        )
        content = await _client(recorder).get_post_content(
            "https://platformer.substack.com/p/bitcoin-explained"
        )
        assert content["author"] == "Casey"
        assert content["slug"] == "bitcoin-explained"
        assert content["substackDomain"] == "platformer.substack.com"
        assert content["contentHtml"] == "<p>Full body</p>"

    @pytest.mark.asyncio
    async def test_latest_post_content_fetches_newest_slug(self):
        recorder = Recorder(
            {
                "/api/v1/archive": POSTS,
                "/api/v1/posts/bitcoin-explained": {"title": "Bitcoin explained", "body_html": "<p>Full body</p>"},
            }
        )
        content = await _client(recorder).get_latest_post_content("platformer")

        assert recorder.requests[0].url.params["limit"] == "1"
        assert recorder.requests[1].url.path == "/api/v1/posts/bitcoin-explained"
        assert content["contentHtml"] == "<p>Full body</p>"

    @pytest.mark.asyncio
    async def test_latest_post_content_empty_archive(self):
        recorder = Recorder({"/api/v1/archive": []})
        assert await _client(recorder).get_latest_post_content("platformer") is None
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_search_matches_teaser_text(self):
        recorder = Recorder({"/api/v1/posts": POSTS})
        matches = await _client(recorder).search_posts("platformer", "ETHEREUM")
        assert [post["id"] for post in matches] == [102]

    @pytest.mark.asyncio
    async def test_category_newsletters(self):
        recorder = Recorder(
            {
                "/api/v1/category/public/96/all": {
                    "publications": [
                        {"name": "Platformer", "subdomain": "platformer", "custom_domain": "www.platformer.news"},
                        {"name": "Import AI", "subdomain": "importai", "custom_domain": None},
                    ]
                }
            }
        )
        newsletters = await _client(recorder).get_category_newsletters(96, page=99, limit=1)

        assert newsletters == [
            {
                "name": "Platformer",
                "domain": "www.platformer.news",
                "subdomain": "platformer",
                "custom_domain": "www.platformer.news",
            }
        ]
        assert recorder.requests[0].url.params["page"] == "20"

    @pytest.mark.asyncio
    async def test_recommendations_use_publication_id(self):
        recorder = Recorder(
            {
                "/api/v1/archive": POSTS[:1],
                "/api/v1/recommendations/from/77": [
                    {"recommendedPublication": {"name": "Import AI", "subdomain": "importai"}}
                ],
            }
        )
        recommendations = await _client(recorder).get_newsletter_recommendations("platformer")
        assert recommendations[0]["domain"] == "importai.substack.com"


class TestSubstackTools:
    """Tool handlers end to end: validation, client, shaping."""

    @pytest.mark.asyncio
    async def test_limit_is_clamped_to_fifty(self, make_invoker):
        """Asking for 500 posts sends limit=50 upstream and returns minimal posts."""
        recorder = Recorder({"/api/v1/archive": POSTS})
        tool = _tool(make_invoker, _client(recorder), "substack-get-recent-posts")

        envelope = await tool.handler({"substackId": "platformer", "limit": 500})

        assert recorder.requests[0].url.params["limit"] == "50"
        posts = json.loads(envelope.first_text)
        assert posts[0] == {
            "id": 101,
            "title": "Bitcoin explained",
            "subtitle": "A primer",
            "slug": "bitcoin-explained",
            "post_date": "2024-05-01T10:00:00.000Z",
            "type": "newsletter",
            "wordcount": 1200,
            "reaction_count": 40,
            "comment_count": 3,
            "audience": "everyone",
        }
        assert posts[1]["subtitle"] == ""

    @pytest.mark.asyncio
    async def test_full_data_converts_html(self, make_invoker):
        recorder = Recorder({"/api/v1/archive": POSTS[:1]})
        tool = _tool(make_invoker, _client(recorder), "substack-get-recent-posts")

        envelope = await tool.handler({"substackId": "platformer", "fullData": True})

        post = json.loads(envelope.first_text)[0]
        assert post["body_text"] == "Full body"
        assert "body_html" not in post

    @pytest.mark.asyncio
    async def test_upstream_error_gives_placeholder(self, make_invoker):
        recorder = Recorder({"/api/v1/archive": {"error": "oops"}}, status=500)
        tool = _tool(make_invoker, _client(recorder), "substack-get-post-slugs")

        envelope = await tool.handler({"substackId": "platformer"})

        assert envelope.first_text == "No posts found"

    @pytest.mark.asyncio
    async def test_missing_publication_is_invalid(self, make_invoker):
        recorder = Recorder({})
        tool = _tool(make_invoker, _client(recorder), "substack-get-posts")

        envelope = await tool.handler({"limit": 3})

        assert envelope.first_text.startswith("Invalid parameters for substack-get-posts")
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_latest_post_simplified_without_metadata(self, make_invoker):
        recorder = Recorder(
            {
                "/api/v1/archive": POSTS[:1],
                "/api/v1/posts/bitcoin-explained": {
                    "title": "Bitcoin explained",
                    "body_html": "<h2>Intro</h2><p>Money, explained.</p>",
                },
            }
        )
        tool = _tool(make_invoker, _client(recorder), "substack-get-latest-post-simplified")

        envelope = await tool.handler({"substackId": "platformer", "includeMetadata": False})

        assert envelope.first_text == "Intro\n\nMoney, explained."

    @pytest.mark.asyncio
    async def test_latest_post_content_full_data_as_text(self, make_invoker):
        recorder = Recorder(
            {
                "/api/v1/archive": POSTS[:1],
                "/api/v1/posts/bitcoin-explained": {
                    "title": "Bitcoin explained",
                    "body_html": "<p>Money</p><script>track()</script>",
                    "publishedBylines": [{"name": "Casey"}],
                },
            }
        )
        tool = _tool(make_invoker, _client(recorder), "substack-get-latest-post-content")

        envelope = await tool.handler({"substackId": "platformer", "fullData": True, "simplifiedText": True})

        content = json.loads(envelope.first_text)
        assert content["contentText"] == "Money"
        assert content["author"] == "Casey"
        assert "contentHtml" not in content

    @pytest.mark.asyncio
    async def test_latest_post_content_empty_publication(self, make_invoker):
        recorder = Recorder({"/api/v1/archive": []})
        tool = _tool(make_invoker, _client(recorder), "substack-get-latest-post-content")

        envelope = await tool.handler({"substackId": "platformer", "fullData": True})

        assert envelope.first_text == "No posts found for this publication"

    @pytest.mark.asyncio
    async def test_search_and_get_content_no_match(self, make_invoker):
        recorder = Recorder({"/api/v1/posts": POSTS})
        tool = _tool(make_invoker, _client(recorder), "substack-search-and-get-content")

        envelope = await tool.handler({"substackId": "platformer", "searchTerm": "dogecoin"})

        assert envelope.first_text == "No posts found matching the search term"

    @pytest.mark.asyncio
    async def test_post_slugs(self, make_invoker):
        recorder = Recorder({"/api/v1/archive": POSTS})
        tool = _tool(make_invoker, _client(recorder), "substack-get-post-slugs")

        envelope = await tool.handler({"substackId": "platformer"})

        assert json.loads(envelope.first_text)[1] == {
            "slug": "weekly-links",
            "title": "Weekly links",
            "post_date": "2024-04-24T10:00:00.000Z",
        }
