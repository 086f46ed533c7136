# =============================================================================
# core/twitter.py  —  Social Media (Twitter / X) Scraping Client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Adapts the `twikit` scraping client to the operations our tools expose.
#   twikit speaks in its own objects (Tweet, User, Trend, Message); every
#   method here converts them to plain dicts so the result can be printed
#   as JSON and handed to an agent.
#
# AUTHENTICATION:
#   twikit logs in with the account's username, e-mail and password, just
#   like a browser.  No username/password → no client (the factory returns
#   None and the safe invoker falls back).  If TWITTER_COOKIES_FILE is set,
#   twikit reuses the saved session instead of logging in on every call.
#
# CAPABILITY FLAGS:
#   basicAuth  = TWITTER_USERNAME + TWITTER_PASSWORD      → read-only tools
#   emailAuth  = TWITTER_EMAIL
#   apiAuth    = the four TWITTER_APP_* / ACCESS_* keys   (reported only)
#   fullAuth   = basicAuth + emailAuth                    → timelines, DMs, writes
#   grokAccess = basicAuth + emailAuth                    (reported only, twikit has no Grok endpoint)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from core.capabilities import SourceCapabilities, is_present, union

logger = logging.getLogger(__name__)

SOURCE = "twitter"

BASIC_CREDENTIALS = ("TWITTER_USERNAME", "TWITTER_PASSWORD")
EMAIL_CREDENTIALS = ("TWITTER_EMAIL",)
API_CREDENTIALS = (
    "TWITTER_APP_KEY",
    "TWITTER_APP_SECRET",
    "TWITTER_ACCESS_TOKEN",
    "TWITTER_ACCESS_SECRET",
)

CAPABILITIES = SourceCapabilities(
    source=SOURCE,
    requirements={
        "basicAuth": BASIC_CREDENTIALS,
        "emailAuth": EMAIL_CREDENTIALS,
        "apiAuth": API_CREDENTIALS,
        "fullAuth": union(BASIC_CREDENTIALS, EMAIL_CREDENTIALS),
        "grokAccess": union(BASIC_CREDENTIALS, EMAIL_CREDENTIALS),
    },
)

TWEET_LIMIT = 280


# =============================================================================
# Record conversion (twikit objects → plain dicts)
# =============================================================================
def user_record(user: Any) -> dict[str, Any]:
    return {
        "id": getattr(user, "id", None),
        "username": getattr(user, "screen_name", None),
        "name": getattr(user, "name", None),
        "bio": getattr(user, "description", None),
        "location": getattr(user, "location", None),
        "url": getattr(user, "url", None),
        "avatar": getattr(user, "profile_image_url", None),
        "followers_count": getattr(user, "followers_count", None),
        "following_count": getattr(user, "following_count", None),
        "tweets_count": getattr(user, "statuses_count", None),
        "is_verified": bool(getattr(user, "verified", False) or getattr(user, "is_blue_verified", False)),
        "joined": getattr(user, "created_at", None),
    }


def tweet_record(tweet: Any) -> dict[str, Any]:
    author = getattr(tweet, "user", None)
    retweeted = getattr(tweet, "retweeted_tweet", None)
    quoted = getattr(tweet, "quote", None)
    return {
        "id": getattr(tweet, "id", None),
        "text": getattr(tweet, "full_text", None) or getattr(tweet, "text", None),
        "created_at": getattr(tweet, "created_at", None),
        "username": getattr(author, "screen_name", None),
        "user_id": getattr(author, "id", None),
        "likes": getattr(tweet, "favorite_count", None),
        "retweets": getattr(tweet, "retweet_count", None),
        "replies": getattr(tweet, "reply_count", None),
        "quotes": getattr(tweet, "quote_count", None),
        "views": getattr(tweet, "view_count", None),
        "lang": getattr(tweet, "lang", None),
        "in_reply_to": getattr(tweet, "in_reply_to", None),
        "is_retweet": retweeted is not None,
        "retweeted_id": getattr(retweeted, "id", None),
        "quoted_id": getattr(quoted, "id", None),
        "hashtags": list(getattr(tweet, "hashtags", None) or []),
    }


def trend_record(trend: Any) -> dict[str, Any]:
    return {
        "name": getattr(trend, "name", None),
        "tweets_count": getattr(trend, "tweets_count", None),
        "context": getattr(trend, "domain_context", None),
    }


def message_record(message: Any) -> dict[str, Any]:
    return {
        "id": getattr(message, "id", None),
        "text": getattr(message, "text", None),
        "sender_id": getattr(message, "sender_id", None),
        "recipient_id": getattr(message, "recipient_id", None),
        "time": getattr(message, "time", None),
    }


def _take(items: Iterable[Any], count: int) -> list[Any]:
    """First ``count`` items of a twikit Result (or any iterable)."""
    taken = []
    for item in items:
        if len(taken) >= count:
            break
        taken.append(item)
    return taken


# =============================================================================
# Client adapter
# =============================================================================
class TwitterClient:
    """The operations our tools need, on top of a logged-in twikit client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def aclose(self) -> None:
        http = getattr(self._client, "http", None)
        close = getattr(http, "aclose", None)
        if close is not None:
            await close()

    async def _user_id(self, username: str) -> str:
        user = await self._client.get_user_by_screen_name(username)
        return user.id

    # --- Profiles --------------------------------------------------------------
    async def get_profile(self, username: str) -> dict[str, Any] | None:
        user = await self._client.get_user_by_screen_name(username)
        return user_record(user) if user is not None else None

    async def get_user_id(self, username: str) -> str:
        return await self._user_id(username) or ""

    async def get_username(self, user_id: str) -> str:
        user = await self._client.get_user_by_id(user_id)
        return getattr(user, "screen_name", None) or ""

    async def search_profiles(self, query: str, count: int) -> list[dict[str, Any]]:
        users = await self._client.search_user(query, count)
        return [user_record(user) for user in _take(users, count)]

    async def get_followers(self, user_id: str, count: int) -> list[dict[str, Any]]:
        users = await self._client.get_user_followers(user_id, count)
        return [user_record(user) for user in _take(users, count)]

    async def get_following(self, user_id: str, count: int) -> list[dict[str, Any]]:
        users = await self._client.get_user_following(user_id, count)
        return [user_record(user) for user in _take(users, count)]

    # --- Tweets ----------------------------------------------------------------
    async def get_tweets(self, username: str, count: int) -> list[dict[str, Any]]:
        tweets = await self._client.get_user_tweets(await self._user_id(username), "Tweets", count=count)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def get_tweets_and_replies(self, username: str, count: int) -> list[dict[str, Any]]:
        tweets = await self._client.get_user_tweets(await self._user_id(username), "Replies", count=count)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def get_latest_tweet(self, username: str, include_retweets: bool = False) -> dict[str, Any] | None:
        tweets = await self._client.get_user_tweets(await self._user_id(username), "Tweets", count=20)
        for tweet in tweets:
            if include_retweets or getattr(tweet, "retweeted_tweet", None) is None:
                return tweet_record(tweet)
        return None

    async def get_tweet(self, tweet_id: str) -> dict[str, Any] | None:
        tweet = await self._client.get_tweet_by_id(tweet_id)
        return tweet_record(tweet) if tweet is not None else None

    async def get_quoted_tweets(self, tweet_id: str, count: int) -> list[dict[str, Any]]:
        # twikit has no quotes endpoint; the search operator returns the same set
        tweets = await self._client.search_tweet(f"quoted_tweet_id:{tweet_id}", "Latest", count=count)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def get_retweeters(self, tweet_id: str) -> list[dict[str, Any]]:
        users = await self._client.get_retweeters(tweet_id)
        return [user_record(user) for user in users]

    async def get_list_tweets(self, list_id: str, count: int) -> list[dict[str, Any]]:
        tweets = await self._client.get_list_tweets(list_id, count)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def search_tweets(self, query: str, count: int) -> list[dict[str, Any]]:
        tweets = await self._client.search_tweet(query, "Latest", count=count)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def get_trends(self) -> list[dict[str, Any]]:
        trends = await self._client.get_trends("trending")
        return [trend_record(trend) for trend in trends]

    # --- Authenticated timelines and messages ---------------------------------
    async def get_home_timeline(self, count: int, seen_tweet_ids: list[str] | None = None) -> list[dict[str, Any]]:
        tweets = await self._client.get_timeline(count=count, seen_tweet_ids=seen_tweet_ids or None)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def get_following_timeline(
        self, count: int, seen_tweet_ids: list[str] | None = None
    ) -> list[dict[str, Any]]:
        tweets = await self._client.get_latest_timeline(count=count, seen_tweet_ids=seen_tweet_ids or None)
        return [tweet_record(tweet) for tweet in _take(tweets, count)]

    async def get_dm_conversations(self, user_id: str) -> dict[str, Any]:
        messages = await self._client.get_dm_history(user_id)
        return {
            "userId": user_id,
            "conversations": [message_record(message) for message in messages],
        }

    # --- Writes ----------------------------------------------------------------
    async def send_tweet(self, text: str) -> dict[str, Any] | None:
        tweet = await self._client.create_tweet(text=text)
        return {"id": getattr(tweet, "id", None), "text": text} if tweet is not None else None

    async def like_tweet(self, tweet_id: str) -> bool:
        await self._client.favorite_tweet(tweet_id)
        return True

    async def retweet(self, tweet_id: str) -> bool:
        await self._client.retweet(tweet_id)
        return True

    async def follow_user(self, username: str) -> bool:
        await self._client.follow_user(await self._user_id(username))
        return True

    async def send_dm(self, user_id: str, text: str) -> dict[str, Any] | None:
        message = await self._client.send_dm(user_id, text)
        if message is None:
            return None
        return {"id": getattr(message, "id", None), "text": text, "recipient_id": user_id}


# =============================================================================
# Factory
# =============================================================================
async def create_twitter_client(
    configuration: Mapping[str, str],
    timeout: float = 30.0,
) -> TwitterClient | None:
    """Log in to Twitter and return a ready client.

    Returns None when the username/password pair is missing.  Login errors
    propagate; the safe invoker reports them as "client unavailable".
    """
    if not all(is_present(configuration.get(key)) for key in BASIC_CREDENTIALS):
        logger.warning("Twitter client not initialized: missing basic authentication credentials")
        return None

    from twikit import Client

    client = Client("en-US", timeout=timeout)
    email = configuration.get("TWITTER_EMAIL")
    cookies_file = configuration.get("TWITTER_COOKIES_FILE")

    logger.info("Logging in to Twitter as %s", configuration["TWITTER_USERNAME"].strip())
    adapter = TwitterClient(client)
    try:
        await client.login(
            auth_info_1=configuration["TWITTER_USERNAME"].strip(),
            auth_info_2=email.strip() if is_present(email) else None,
            password=configuration["TWITTER_PASSWORD"],
            cookies_file=cookies_file.strip() if is_present(cookies_file) else None,
        )
    except BaseException:
        # Failed or cancelled (timeout) login: the session is never handed out
        await adapter.aclose()
        raise
    return adapter
