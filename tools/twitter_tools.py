# =============================================================================
# tools/twitter_tools.py  —  Social Media Tool Catalog
# =============================================================================
#
# THE THREE TIERS:
#
#   PUBLIC      (basicAuth)   profiles, tweets, search, trends, followers
#   PRIVILEGED  (fullAuth)    home/following timelines, DM history
#   MUTATING    (fullAuth)    tweet, like, retweet, follow, DM
#
#   The floors are declared once at the bottom of catalog(); a tool only
#   picks its tier.
#
# WRITE TOOLS:
#   Write operations return a status sentence rather than JSON: the
#   ``shape`` hook turns the operation's result (or its fallback) into
#   "... successfully" / "Failed to ...".
#
# NOT SERVED:
#   Grok chat and article lookup.  twikit exposes neither, and a tool whose
#   only outcome is its fallback is not registered.  grokAccess stays in the
#   snapshot.
# =============================================================================

from __future__ import annotations

from typing import Any, Mapping

from core.config import ServerSettings
from core.context import SourceDefinition
from core.models import ParamSpec, Tier
from core.registry import SourceCatalog, define_tool
from core.safe_call import SafeInvoker
from core.twitter import CAPABILITIES, SOURCE, TWEET_LIMIT, create_twitter_client

# Appended to the twitter-get-features description.
UNSUPPORTED_NOTE = (
    "Grok chat and long-form article lookup are not offered: the twikit client "
    "has no endpoint for either, so grokAccess is reported but enables no tool."
)


def count_param(description: str = "Number of tweets to retrieve (max 100)") -> ParamSpec:
    return ParamSpec("count", "integer", description, default=3, minimum=1, maximum=100)


def status(success: str, failure: str):
    """Shape hook: truthy result → ``success``, fallback → ``failure``."""
    return lambda result: success if result else failure


def _no_conversations(result: Any) -> bool:
    return not result or not result.get("conversations")


def catalog(invoker: SafeInvoker) -> SourceCatalog:
    def tool(**kwargs: Any):
        return define_tool(invoker, **kwargs)

    tweet_id = ParamSpec("tweetId", "string", "ID of the tweet", required=True)
    user_id = ParamSpec("userId", "string", "Twitter user ID", required=True)
    username = ParamSpec("username", "string", "Twitter username (without @)", required=True)
    seen = ParamSpec(
        "seenTweetIds", "array", "IDs of tweets already seen", items={"type": "string"}
    )

    descriptors = (
        # --- PUBLIC ------------------------------------------------------------
        tool(
            name="twitter-get-profile",
            description="Gets public profile information for a Twitter user.",
            params=(username,),
            call=lambda client, args: client.get_profile(args["username"]),
            fallback=None,
            placeholder="Profile not found",
        ),
        tool(
            name="twitter-get-tweets",
            description="Gets recent tweets from a specific user (doesn't include replies).",
            params=(username, count_param()),
            call=lambda client, args: client.get_tweets(args["username"], args["count"]),
            fallback=[],
            placeholder="No tweets found",
        ),
        tool(
            name="twitter-get-tweets-and-replies",
            description="Gets recent tweets and replies from a specific user (includes conversations).",
            params=(username, count_param()),
            call=lambda client, args: client.get_tweets_and_replies(args["username"], args["count"]),
            fallback=[],
            placeholder="No tweets found",
        ),
        tool(
            name="twitter-get-latest-tweet",
            description="Gets only the most recent tweet from a user (optionally include retweets).",
            params=(
                username,
                ParamSpec("includeRetweets", "boolean", "Whether to include retweets", default=False),
            ),
            call=lambda client, args: client.get_latest_tweet(args["username"], args["includeRetweets"]),
            fallback=None,
            placeholder="No tweet found",
        ),
        tool(
            name="twitter-get-tweet",
            description="Gets a single tweet by its ID.",
            params=(tweet_id,),
            call=lambda client, args: client.get_tweet(args["tweetId"]),
            fallback=None,
            placeholder="Tweet not found",
        ),
        tool(
            name="twitter-get-quoted-tweets",
            description="Gets tweets that quote (retweet with comment) a specific tweet.",
            params=(tweet_id, count_param("Maximum number of quoted tweets to retrieve")),
            call=lambda client, args: client.get_quoted_tweets(args["tweetId"], args["count"]),
            fallback=[],
            placeholder="No quoted tweets found",
        ),
        tool(
            name="twitter-get-retweeters",
            description="Gets users who retweeted a specific tweet.",
            params=(tweet_id,),
            call=lambda client, args: client.get_retweeters(args["tweetId"]),
            fallback=[],
            placeholder="No retweeters found",
        ),
        tool(
            name="twitter-get-list-tweets",
            description="Gets tweets from a Twitter list (curated collection of users).",
            params=(
                ParamSpec("listId", "string", "ID of the Twitter list to get tweets from", required=True),
                count_param(),
            ),
            call=lambda client, args: client.get_list_tweets(args["listId"], args["count"]),
            fallback=[],
            placeholder="No tweets found in list",
        ),
        tool(
            name="twitter-get-trends",
            description="Gets current trending topics on Twitter.",
            call=lambda client, args: client.get_trends(),
            fallback=[],
            placeholder="No trends found",
        ),
        tool(
            name="twitter-search-tweets",
            description="Searches for tweets containing specific keywords or matching search criteria.",
            params=(ParamSpec("query", "string", "Search query", required=True), count_param()),
            call=lambda client, args: client.search_tweets(args["query"], args["count"]),
            fallback=[],
            placeholder="No tweets found",
        ),
        tool(
            name="twitter-search-profiles",
            description="Searches for Twitter user profiles matching the search query.",
            params=(
                ParamSpec("query", "string", "Search query", required=True),
                count_param("Number of profiles to retrieve (max 100)"),
            ),
            call=lambda client, args: client.search_profiles(args["query"], args["count"]),
            fallback=[],
            placeholder="No profiles found",
        ),
        tool(
            name="twitter-get-user-id",
            description="Converts a Twitter username to its numeric user ID.",
            params=(username,),
            call=lambda client, args: client.get_user_id(args["username"]),
            fallback="",
            placeholder="User ID not found",
        ),
        tool(
            name="twitter-get-username",
            description="Converts a Twitter user ID to its username (screen name).",
            params=(user_id,),
            call=lambda client, args: client.get_username(args["userId"]),
            fallback="",
            placeholder="Username not found",
        ),
        tool(
            name="twitter-get-followers",
            description="Gets users who follow a specific Twitter user.",
            params=(user_id, count_param("Number of followers to retrieve (max 100)")),
            call=lambda client, args: client.get_followers(args["userId"], args["count"]),
            fallback=[],
            placeholder="No followers found",
        ),
        tool(
            name="twitter-get-following",
            description="Gets users that a specific Twitter user follows.",
            params=(user_id, count_param("Number of following to retrieve (max 100)")),
            call=lambda client, args: client.get_following(args["userId"], args["count"]),
            fallback=[],
            placeholder="No following found",
        ),
        # --- PRIVILEGED ----------------------------------------------------------
        tool(
            name="twitter-get-home-timeline",
            description="Gets the home timeline for the authenticated user.",
            params=(count_param(), seen),
            call=lambda client, args: client.get_home_timeline(args["count"], args["seenTweetIds"]),
            fallback=[],
            placeholder="No tweets found",
            tier=Tier.PRIVILEGED,
        ),
        tool(
            name="twitter-get-following-timeline",
            description="Gets tweets from accounts the authenticated user follows.",
            params=(count_param(), seen),
            call=lambda client, args: client.get_following_timeline(args["count"], args["seenTweetIds"]),
            fallback=[],
            placeholder="No tweets found",
            tier=Tier.PRIVILEGED,
        ),
        tool(
            name="twitter-get-dm-conversations",
            description="Gets direct message history with a user for the authenticated account.",
            params=(ParamSpec("userId", "string", "User ID to get conversations for", required=True),),
            call=lambda client, args: client.get_dm_conversations(args["userId"]),
            fallback={"userId": "", "conversations": []},
            placeholder="No conversations found",
            tier=Tier.PRIVILEGED,
            empty=_no_conversations,
        ),
        # --- MUTATING ------------------------------------------------------------
        tool(
            name="twitter-send-tweet",
            description="Posts a new tweet to the authenticated user's account.",
            params=(
                ParamSpec(
                    "text", "string", f"Tweet text (max {TWEET_LIMIT} characters)",
                    required=True, max_length=TWEET_LIMIT,
                ),
            ),
            call=lambda client, args: client.send_tweet(args["text"]),
            fallback=None,
            placeholder="Failed to send tweet",
            tier=Tier.MUTATING,
            shape=status("Tweet sent successfully", "Failed to send tweet"),
        ),
        tool(
            name="twitter-like-tweet",
            description="Likes a tweet as the authenticated user.",
            params=(tweet_id,),
            call=lambda client, args: client.like_tweet(args["tweetId"]),
            fallback=False,
            placeholder="Failed to like tweet",
            tier=Tier.MUTATING,
            shape=status("Tweet liked successfully", "Failed to like tweet"),
        ),
        tool(
            name="twitter-retweet",
            description="Retweets a tweet as the authenticated user.",
            params=(tweet_id,),
            call=lambda client, args: client.retweet(args["tweetId"]),
            fallback=False,
            placeholder="Failed to retweet",
            tier=Tier.MUTATING,
            shape=status("Retweeted successfully", "Failed to retweet"),
        ),
        tool(
            name="twitter-follow-user",
            description="Follows a user as the authenticated user.",
            params=(ParamSpec("username", "string", "Username of the user to follow", required=True),),
            call=lambda client, args: client.follow_user(args["username"]),
            fallback=False,
            placeholder="Failed to follow user",
            tier=Tier.MUTATING,
            shape=status("User followed successfully", "Failed to follow user"),
        ),
        tool(
            name="twitter-send-dm",
            description="Sends a direct message to a user as the authenticated account.",
            params=(
                ParamSpec("userId", "string", "ID of the user to send the message to", required=True),
                ParamSpec("text", "string", "Text of the message to send", required=True),
            ),
            call=lambda client, args: client.send_dm(args["userId"], args["text"]),
            fallback=None,
            placeholder="Failed to send message",
            tier=Tier.MUTATING,
            shape=status("Message sent successfully", "Failed to send message"),
        ),
    )

    return SourceCatalog(
        source=SOURCE,
        floors={
            Tier.PUBLIC: frozenset({"basicAuth"}),
            Tier.PRIVILEGED: frozenset({"fullAuth"}),
            Tier.MUTATING: frozenset({"fullAuth"}),
        },
        descriptors=descriptors,
        notes=UNSUPPORTED_NOTE,
    )


def make_factory(configuration: Mapping[str, str], settings: ServerSettings):
    async def factory():
        return await create_twitter_client(configuration, timeout=settings.request_timeout)

    return factory


DEFINITION = SourceDefinition(
    capabilities=CAPABILITIES,
    minimum_capability="basicAuth",
    make_factory=make_factory,
    catalog=catalog,
)
