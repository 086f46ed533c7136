# =============================================================================
# tools/substack_tools.py  —  Newsletter Tool Catalog
# =============================================================================
#
# One ToolDescriptor per newsletter operation.  Each entry says:
#   - the name and description the agent sees,
#   - its parameters (ParamSpec),
#   - the upstream call, run inside the safe invoker,
#   - the fallback value and the placeholder text for "nothing came back".
#
# Everything here is PUBLIC tier: the Substack API needs no credentials.
# =============================================================================

from __future__ import annotations

from typing import Any, Mapping

from core.content import extract_structured_content, html_to_text, process_post_content
from core.context import SourceDefinition
from core.config import ServerSettings
from core.models import ParamSpec, Tier
from core.registry import SourceCatalog, define_tool
from core.safe_call import SafeInvoker
from core.substack import (
    CAPABILITIES,
    SOURCE,
    SubstackClient,
    minimal_post,
    post_slug,
    post_summary,
    post_url,
)

SUBSTACK_ID = ParamSpec(
    "substackId", "string", "Substack publication ID (subdomain or custom domain)", required=True
)
FULL_DATA = ParamSpec(
    "fullData", "boolean", "Whether to return full post data or just basic information", default=False
)
SEARCH_TERM = ParamSpec("searchTerm", "string", "Term to search for in posts", required=True)


def limit_param(description: str = "Number of posts to retrieve (max 50)") -> ParamSpec:
    return ParamSpec("limit", "integer", description, default=3, minimum=1, maximum=50)


def with_content_text(content: dict[str, Any], simplified: bool = False) -> dict[str, Any]:
    """Replace ``contentHtml`` with a plain-text ``contentText``."""
    content = dict(content)
    markup = content.pop("contentHtml", None)
    if markup:
        convert = extract_structured_content if simplified else html_to_text
        content["contentText"] = convert(markup)
    return content


# =============================================================================
# Upstream calls
# =============================================================================
async def _post_slugs(client: SubstackClient, args: Mapping[str, Any]) -> list[dict[str, Any]]:
    posts = await client.get_recent_posts(args["substackId"], args["limit"])
    return [post_slug(post) for post in posts]


async def _recent_posts(client: SubstackClient, args: Mapping[str, Any]) -> list[dict[str, Any]]:
    posts = await client.get_recent_posts(args["substackId"], args["limit"])
    view = process_post_content if args["fullData"] else minimal_post
    return [view(post) for post in posts]


async def _posts(client: SubstackClient, args: Mapping[str, Any]) -> list[dict[str, Any]]:
    posts = await client.get_posts(args["substackId"], args["limit"], args["offset"])
    view = process_post_content if args["fullData"] else minimal_post
    return [view(post) for post in posts]


async def _post_by_slug(client: SubstackClient, args: Mapping[str, Any]) -> dict[str, Any] | None:
    post = await client.get_post_by_slug(args["substackId"], args["slug"])
    if post is None:
        return None
    return process_post_content(post) if args["fullData"] else minimal_post(post)


async def _post_content(client: SubstackClient, args: Mapping[str, Any]) -> dict[str, Any]:
    return with_content_text(await client.get_post_content(args["postUrl"]))


async def _latest_post_content(client: SubstackClient, args: Mapping[str, Any]) -> dict[str, Any] | None:
    if not args["fullData"]:
        posts = await client.get_recent_posts(args["substackId"], 1)
        return minimal_post(posts[0]) if posts else None
    content = await client.get_latest_post_content(args["substackId"])
    if content is None:
        return None
    return with_content_text(content, simplified=args["simplifiedText"])


async def _latest_post_simplified(client: SubstackClient, args: Mapping[str, Any]) -> Any:
    content = await client.get_latest_post_content(args["substackId"])
    if content is None:
        return None
    text = extract_structured_content(content.get("contentHtml"))
    if not args["includeMetadata"]:
        return text
    return {
        "title": content.get("title"),
        "author": content.get("author"),
        "publish_date": content.get("publish_date"),
        "canonical_url": content.get("canonical_url"),
        "content": text,
    }


async def _search_and_get_content(client: SubstackClient, args: Mapping[str, Any]) -> dict[str, Any] | None:
    posts = await client.search_posts(args["substackId"], args["searchTerm"], 1)
    if not posts:
        return None
    post = posts[0]
    if not args["fullData"]:
        return minimal_post(post)
    return with_content_text(await client.get_post_content(post_url(args["substackId"], post["slug"])))


async def _post_summaries(client: SubstackClient, args: Mapping[str, Any]) -> list[dict[str, Any]]:
    posts = await client.get_recent_posts(args["substackId"], args["limit"])
    return [post_summary(post) for post in posts]


# =============================================================================
# Catalog
# =============================================================================
def catalog(invoker: SafeInvoker) -> SourceCatalog:
    def tool(**kwargs: Any):
        return define_tool(invoker, tier=Tier.PUBLIC, **kwargs)

    descriptors = (
        tool(
            name="substack-get-post-slugs",
            description=(
                "Gets a lightweight list of recent posts with only basic info "
                "(slug, title, date). Best for browsing publications quickly."
            ),
            params=(SUBSTACK_ID, limit_param()),
            call=_post_slugs,
            fallback=[],
            placeholder="No posts found",
        ),
        tool(
            name="substack-get-recent-posts",
            description=(
                "Retrieves recent posts from a Substack publication. Returns minimal "
                "metadata by default, or full content when fullData=true."
            ),
            params=(SUBSTACK_ID, limit_param(), FULL_DATA),
            call=_recent_posts,
            fallback=[],
            placeholder="No posts found",
        ),
        tool(
            name="substack-get-posts",
            description=(
                "Gets posts from a Substack publication with pagination support. "
                "Use offset to navigate through older posts."
            ),
            params=(
                SUBSTACK_ID,
                limit_param(),
                ParamSpec("offset", "integer", "Offset for pagination", default=0, minimum=0),
                FULL_DATA,
            ),
            call=_posts,
            fallback=[],
            placeholder="No posts found",
        ),
        tool(
            name="substack-get-post-by-slug",
            description=(
                "Retrieves a specific post by its slug identifier. "
                "Use fullData=true to get complete content."
            ),
            params=(
                SUBSTACK_ID,
                ParamSpec("slug", "string", "Slug of the post to retrieve", required=True),
                FULL_DATA,
            ),
            call=_post_by_slug,
            fallback=None,
            placeholder="Post not found",
        ),
        tool(
            name="substack-get-post-content",
            description="Fetches full content of a post given its complete URL. Returns full article content.",
            params=(
                ParamSpec(
                    "postUrl",
                    "string",
                    "Full URL of the Substack post (e.g., https://example.substack.com/p/post-slug)",
                    required=True,
                ),
            ),
            call=_post_content,
            fallback=None,
            placeholder="Post content not found",
        ),
        tool(
            name="substack-get-latest-post-content",
            description=(
                "Retrieves the most recent post from a publication. "
                "Set fullData=true to get complete content."
            ),
            params=(
                SUBSTACK_ID,
                ParamSpec(
                    "fullData", "boolean",
                    "Whether to return full post content or just basic information",
                    default=False,
                ),
                ParamSpec(
                    "simplifiedText", "boolean",
                    "When true, returns simplified text content instead of HTML "
                    "(only applies when fullData=true)",
                    default=False,
                ),
            ),
            call=_latest_post_content,
            fallback=None,
            placeholder="No posts found for this publication",
        ),
        tool(
            name="substack-get-comments",
            description="Retrieves comments for a specific post.",
            params=(
                SUBSTACK_ID,
                ParamSpec("postId", "string", "ID of the post to get comments for", required=True),
            ),
            call=lambda client, args: client.get_comments(args["substackId"], args["postId"]),
            fallback=[],
            placeholder="No comments found",
        ),
        tool(
            name="substack-search-posts",
            description=(
                "Searches for posts containing the specified term. "
                "Returns matching posts with metadata."
            ),
            params=(SUBSTACK_ID, SEARCH_TERM, limit_param("Maximum number of results to return (max 50)")),
            call=lambda client, args: client.search_posts(
                args["substackId"], args["searchTerm"], args["limit"]
            ),
            fallback=[],
            placeholder="No matching posts found",
        ),
        tool(
            name="substack-get-publication-info",
            description=(
                "Gets information about a Substack publication including "
                "description, stats, and metadata."
            ),
            params=(SUBSTACK_ID,),
            call=lambda client, args: client.get_publication_info(args["substackId"]),
            fallback=None,
            placeholder="Publication information not found",
        ),
        tool(
            name="substack-list-categories",
            description="Lists all available Substack content categories.",
            call=lambda client, args: client.list_categories(),
            fallback=[],
            placeholder="No categories found",
        ),
        tool(
            name="substack-get-category-newsletters",
            description="Gets list of newsletters in a specific category.",
            params=(
                ParamSpec("categoryId", "integer", "Category ID to get newsletters for", required=True),
                ParamSpec("page", "integer", "Page number for pagination", default=0, minimum=0, maximum=20),
                limit_param("Number of newsletters to retrieve (max 50)"),
            ),
            call=lambda client, args: client.get_category_newsletters(
                args["categoryId"], args["page"], args["limit"]
            ),
            fallback=[],
            placeholder="No newsletters found in this category",
        ),
        tool(
            name="substack-get-user-profile",
            description="Gets public profile information for a Substack user.",
            params=(
                ParamSpec(
                    "username", "string", "Substack username to get profile information for", required=True
                ),
            ),
            call=lambda client, args: client.get_user_profile(args["username"]),
            fallback=None,
            placeholder="User profile not found",
        ),
        tool(
            name="substack-get-newsletter-authors",
            description="Gets the authors of a Substack publication.",
            params=(SUBSTACK_ID,),
            call=lambda client, args: client.get_newsletter_authors(args["substackId"]),
            fallback=[],
            placeholder="No authors found",
        ),
        tool(
            name="substack-get-latest-post-simplified",
            description=(
                "Retrieves the most recent post from a publication in simplified "
                "text format without HTML markup."
            ),
            params=(
                SUBSTACK_ID,
                ParamSpec(
                    "includeMetadata", "boolean",
                    "Whether to include post metadata along with content",
                    default=True,
                ),
            ),
            call=_latest_post_simplified,
            fallback=None,
            placeholder="No posts found for this publication",
        ),
        tool(
            name="substack-get-newsletter-recommendations",
            description="Gets recommended newsletters for a specific publication.",
            params=(SUBSTACK_ID,),
            call=lambda client, args: client.get_newsletter_recommendations(args["substackId"]),
            fallback=[],
            placeholder="No recommendations found",
        ),
        tool(
            name="substack-search-and-get-content",
            description=(
                "Searches for posts by term and returns the first match. "
                "Use fullData=true to get complete content."
            ),
            params=(
                SUBSTACK_ID,
                SEARCH_TERM,
                ParamSpec(
                    "fullData", "boolean",
                    "Whether to return full post content or just basic information",
                    default=False,
                ),
            ),
            call=_search_and_get_content,
            fallback=None,
            placeholder="No posts found matching the search term",
        ),
        tool(
            name="substack-get-post-summaries",
            description=(
                "Gets lightweight summaries of posts (without full content), "
                "optimized for efficient browsing."
            ),
            params=(SUBSTACK_ID, limit_param()),
            call=_post_summaries,
            fallback=[],
            placeholder="No posts found",
        ),
    )

    return SourceCatalog(
        source=SOURCE,
        floors={Tier.PUBLIC: frozenset({"basicAccess"})},
        descriptors=descriptors,
    )


def make_factory(configuration: Mapping[str, str], settings: ServerSettings):
    async def factory() -> SubstackClient:
        return SubstackClient(timeout=settings.request_timeout)

    return factory


DEFINITION = SourceDefinition(
    capabilities=CAPABILITIES,
    minimum_capability="basicAccess",
    make_factory=make_factory,
    catalog=catalog,
)
