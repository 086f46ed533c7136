"""Tests for the Twitter adapter and social media tools.

The adapter wraps a fake client object; only the login tests patch
``twikit.Client`` itself.
"""

import asyncio
import json
from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock, MagicMock

from core.config import ServerSettings
from core.models import CapabilitySnapshot
from core.registry import build_registry
from core.safe_call import PerCallClientProvider, SafeInvoker
from core.twitter import TwitterClient, create_twitter_client, tweet_record, user_record
from tools import twitter_tools

ALICE = SimpleNamespace(
    id="1001",
    screen_name="alice",
    name="Alice",
    description="Writes about markets",
    location="Lisbon",
    url=None,
    profile_image_url="https://img/alice.png",
    followers_count=1200,
    following_count=80,
    statuses_count=5400,
    verified=False,
    is_blue_verified=True,
    created_at="Mon Jan 01 00:00:00 +0000 2018",
)


def _tweet(tweet_id, text, retweeted=None):
    return SimpleNamespace(
        id=tweet_id,
        text=text,
        full_text=text,
        created_at="Tue May 07 12:00:00 +0000 2024",
        user=ALICE,
        favorite_count=10,
        retweet_count=2,
        reply_count=1,
        quote_count=0,
        view_count="900",
        lang="en",
        in_reply_to=None,
        retweeted_tweet=retweeted,
        quote=None,
        hashtags=["btc"],
    )


@pytest.fixture
def twikit_client():
    client = MagicMock()
    client.get_user_by_screen_name = AsyncMock(return_value=ALICE)
    client.get_user_by_id = AsyncMock(return_value=ALICE)
    client.get_user_tweets = AsyncMock(
        return_value=[
            _tweet("1", "RT something", retweeted=_tweet("0", "original")),
            _tweet("2", "my own tweet"),
            _tweet("3", "older tweet"),
        ]
    )
    client.search_tweet = AsyncMock(return_value=[_tweet("9", "quoting you")])
    client.get_dm_history = AsyncMock(return_value=[])
    client.favorite_tweet = AsyncMock()
    client.send_dm = AsyncMock(return_value=SimpleNamespace(id="m1"))
    client.create_tweet = AsyncMock(return_value=SimpleNamespace(id="t1"))
    return client


def _tool(make_invoker, client, name):
    flags = {"basicAuth": True, "emailAuth": True, "apiAuth": False, "fullAuth": True, "grokAccess": True}
    invoker = make_invoker(client, source="twitter", required="basicAuth", flags=flags)
    catalog = twitter_tools.catalog(invoker)
    return next(descriptor for descriptor in catalog.descriptors if descriptor.name == name)


class TestRecords:
    def test_user_record(self):
        record = user_record(ALICE)
        assert record["username"] == "alice"
        assert record["followers_count"] == 1200
        assert record["is_verified"] is True

    def test_tweet_record(self):
        record = tweet_record(_tweet("2", "hello"))
        assert record["id"] == "2"
        assert record["text"] == "hello"
        assert record["username"] == "alice"
        assert record["is_retweet"] is False
        json.dumps(record)


class TestTwitterClient:
    """The adapter resolves usernames and trims results."""

    @pytest.mark.asyncio
    async def test_get_tweets_resolves_user_and_limits(self, twikit_client):
        tweets = await TwitterClient(twikit_client).get_tweets("alice", 2)

        twikit_client.get_user_tweets.assert_awaited_once_with("1001", "Tweets", count=2)
        assert [tweet["id"] for tweet in tweets] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_latest_tweet_skips_retweets(self, twikit_client):
        tweet = await TwitterClient(twikit_client).get_latest_tweet("alice")
        assert tweet["id"] == "2"

    @pytest.mark.asyncio
    async def test_latest_tweet_with_retweets(self, twikit_client):
        tweet = await TwitterClient(twikit_client).get_latest_tweet("alice", include_retweets=True)
        assert tweet["id"] == "1"

    @pytest.mark.asyncio
    async def test_quoted_tweets_use_search_operator(self, twikit_client):
        await TwitterClient(twikit_client).get_quoted_tweets("42", 5)
        twikit_client.search_tweet.assert_awaited_once_with("quoted_tweet_id:42", "Latest", count=5)

    @pytest.mark.asyncio
    async def test_send_dm_shape(self, twikit_client):
        result = await TwitterClient(twikit_client).send_dm("1001", "hi")
        assert result == {"id": "m1", "text": "hi", "recipient_id": "1001"}


class TestTwitterTools:
    """Tool handlers with a fake logged-in client."""

    @pytest.mark.asyncio
    async def test_get_profile(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-get-profile")
        envelope = await tool.handler({"username": "alice"})
        assert json.loads(envelope.first_text)["name"] == "Alice"

    @pytest.mark.asyncio
    async def test_user_id_is_plain_text(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-get-user-id")
        envelope = await tool.handler({"username": "alice"})
        assert envelope.first_text == "1001"

    @pytest.mark.asyncio
    async def test_count_clamped(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-get-tweets")
        await tool.handler({"username": "alice", "count": 1000})
        twikit_client.get_user_tweets.assert_awaited_once_with("1001", "Tweets", count=100)

    @pytest.mark.asyncio
    async def test_long_tweet_rejected(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-send-tweet")

        envelope = await tool.handler({"text": "x" * 281})

        assert envelope.first_text.startswith("Invalid parameters for twitter-send-tweet")
        twikit_client.create_tweet.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_tweet_status(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-send-tweet")
        envelope = await tool.handler({"text": "gm"})
        assert envelope.first_text == "Tweet sent successfully"
        twikit_client.create_tweet.assert_awaited_once_with(text="gm")

    @pytest.mark.asyncio
    async def test_like_success_and_failure(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-like-tweet")
        assert (await tool.handler({"tweetId": "2"})).first_text == "Tweet liked successfully"

        twikit_client.favorite_tweet.side_effect = RuntimeError("403 Forbidden")
        assert (await tool.handler({"tweetId": "2"})).first_text == "Failed to like tweet"

    @pytest.mark.asyncio
    async def test_empty_dm_history(self, make_invoker, twikit_client):
        tool = _tool(make_invoker, TwitterClient(twikit_client), "twitter-get-dm-conversations")
        envelope = await tool.handler({"userId": "1001"})
        assert envelope.first_text == "No conversations found"

    @pytest.mark.asyncio
    async def test_no_client_without_credentials(self, make_invoker):
        """Without a login the wrapper falls back before any call is made."""
        tool = _tool(make_invoker, None, "twitter-get-tweets")
        envelope = await tool.handler({"username": "alice"})
        assert envelope.first_text == "No tweets found"


@pytest.mark.asyncio
async def test_factory_returns_none_without_basic_credentials():
    assert await create_twitter_client({"TWITTER_USERNAME": "alice", "TWITTER_PASSWORD": "  "}) is None


def test_grok_access_registers_no_tool(make_invoker):
    """grokAccess is reported, but no tool exists that could only fail."""
    flags = {"basicAuth": True, "emailAuth": True, "apiAuth": True, "fullAuth": True, "grokAccess": True}
    snapshot = CapabilitySnapshot(source="twitter", flags=flags)
    invoker = make_invoker(None, source="twitter", required="basicAuth", flags=flags)

    descriptors = build_registry(snapshot, twitter_tools.catalog(invoker))

    assert not any("grok" in descriptor.name for descriptor in descriptors)
    assert snapshot["grokAccess"] is True
    assert "Grok chat" in descriptors[0].description


# ---------------------------------------------------------------------------
# Login cleanup
# ---------------------------------------------------------------------------

FULL_CONFIGURATION = {
    "TWITTER_USERNAME": "alice",
    "TWITTER_PASSWORD": "pw",
    "TWITTER_EMAIL": "alice@example.com",
}


class FakeTwikitClient:
    """Stands in for ``twikit.Client``; ``login`` behaviour is set per test."""

    instances = []
    login_behaviour = None

    def __init__(self, language, timeout=None):
        self.http = MagicMock()
        self.http.aclose = AsyncMock()
        self.timeout = timeout
        FakeTwikitClient.instances.append(self)

    async def login(self, **kwargs):
        await FakeTwikitClient.login_behaviour(**kwargs)


@pytest.fixture
def fake_twikit(monkeypatch):
    FakeTwikitClient.instances = []
    monkeypatch.setattr("twikit.Client", FakeTwikitClient)
    return FakeTwikitClient


class TestCreateTwitterClient:
    """A session that never finished logging in is closed."""

    @pytest.mark.asyncio
    async def test_successful_login(self, fake_twikit):
        fake_twikit.login_behaviour = AsyncMock()

        client = await create_twitter_client(FULL_CONFIGURATION, timeout=5.0)

        assert isinstance(client, TwitterClient)
        fake_twikit.login_behaviour.assert_awaited_once_with(
            auth_info_1="alice",
            auth_info_2="alice@example.com",
            password="pw",
            cookies_file=None,
        )
        fake_twikit.instances[0].http.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_login_closes_session(self, fake_twikit):
        fake_twikit.login_behaviour = AsyncMock(side_effect=RuntimeError("bad password"))

        with pytest.raises(RuntimeError, match="bad password"):
            await create_twitter_client(FULL_CONFIGURATION)

        fake_twikit.instances[0].http.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_login_timeout_closes_session(self, fake_twikit):
        """The invoker's timeout cancels the login; the fallback is returned."""

        async def hang(**kwargs):
            await asyncio.sleep(10)

        fake_twikit.login_behaviour = hang
        factory = twitter_tools.make_factory(FULL_CONFIGURATION, ServerSettings())
        invoker = SafeInvoker(
            "twitter",
            PerCallClientProvider(factory),
            CapabilitySnapshot(source="twitter", flags={"basicAuth": True}),
            "basicAuth",
            timeout=0.05,
        )

        result = await invoker.invoke("get_profile", lambda client: client.get_profile("alice"), None)

        assert result is None
        fake_twikit.instances[0].http.aclose.assert_awaited_once()
