# =============================================================================
# core/substack.py  —  Newsletter (Substack) Public API Client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Thin async wrapper over Substack's public, unauthenticated JSON API.
#   Every method fetches, checks the response looks like what we expect,
#   and returns plain dicts/lists.  Failures RAISE: the safe invoker in
#   core/safe_call.py is what turns them into fallbacks.
#
# PUBLICATION IDS:
#   Tools accept either a subdomain ("platformer") or a full domain
#   ("www.platformer.news").  normalize_substack_id() appends
#   ".substack.com" only when there is no dot.
#
# CAPABILITIES:
#   The API is public, so the only flag, basicAccess, needs no credentials
#   and is always on.
# =============================================================================

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx

from core.capabilities import SourceCapabilities
from core.params import clamp

SOURCE = "substack"
CAPABILITIES = SourceCapabilities(source=SOURCE, requirements={"basicAccess": ()})

SUBSTACK_DOMAIN = "substack.com"
API_ROOT = f"https://{SUBSTACK_DOMAIN}/api/v1"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

MAX_POSTS = 50
MAX_CATEGORY_PAGE = 20


def normalize_substack_id(substack_id: str) -> str:
    """``"name"`` → ``"name.substack.com"``; anything with a dot is kept."""
    substack_id = substack_id.strip()
    if "." in substack_id:
        return substack_id
    return f"{substack_id}.{SUBSTACK_DOMAIN}"


def post_url(substack_id: str, slug: str) -> str:
    return f"https://{normalize_substack_id(substack_id)}/p/{slug}"


def publication_domain(publication: dict[str, Any]) -> str:
    return publication.get("custom_domain") or f"{publication.get('subdomain')}.{SUBSTACK_DOMAIN}"


# =============================================================================
# Post views — how much of a post an agent gets back
# =============================================================================
def minimal_post(post: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": post.get("id"),
        "title": post.get("title"),
        "subtitle": post.get("subtitle") or "",
        "slug": post.get("slug"),
        "post_date": post.get("post_date"),
        "type": post.get("type"),
        "wordcount": post.get("wordcount"),
        "reaction_count": post.get("reaction_count"),
        "comment_count": post.get("comment_count"),
        "audience": post.get("audience"),
    }


def post_summary(post: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": post.get("id"),
        "title": post.get("title"),
        "subtitle": post.get("subtitle"),
        "slug": post.get("slug"),
        "post_date": post.get("post_date"),
        "wordcount": post.get("wordcount"),
        "type": post.get("type"),
        "reaction_count": post.get("reaction_count"),
        "comment_count": post.get("comment_count"),
    }


def post_slug(post: dict[str, Any]) -> dict[str, Any]:
    return {"slug": post.get("slug"), "title": post.get("title"), "post_date": post.get("post_date")}


def _expect_list(data: Any, what: str) -> list[Any]:
    if not isinstance(data, list):
        raise ValueError(f"Unexpected response shape for {what}: {type(data).__name__}")
    return data


def _expect_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected response shape for {what}: {type(data).__name__}")
    return data


class SubstackClient:
    """Async client for the public Substack API."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._http.get(url, params=params)
        response.raise_for_status()
        return response.json()

    # --- Posts ---------------------------------------------------------------
    async def get_posts(self, substack_id: str, limit: int = 10, offset: int = 0) -> list[dict[str, Any]]:
        """Posts in the publication's default order, with pagination."""
        domain = normalize_substack_id(substack_id)
        data = await self._get_json(
            f"https://{domain}/api/v1/posts",
            params={"limit": int(clamp(limit, 1, MAX_POSTS)), "offset": max(0, offset)},
        )
        return _expect_list(data, "posts")

    async def get_recent_posts(self, substack_id: str, limit: int = 10, offset: int = 0) -> list[dict[str, Any]]:
        """Posts from the archive, newest first."""
        domain = normalize_substack_id(substack_id)
        data = await self._get_json(
            f"https://{domain}/api/v1/archive",
            params={"sort": "new", "limit": int(clamp(limit, 1, MAX_POSTS)), "offset": max(0, offset)},
        )
        return _expect_list(data, "archive")

    async def get_post_by_slug(self, substack_id: str, slug: str) -> dict[str, Any] | None:
        """Look for ``slug`` in the newest 50 posts, then the next 50."""
        for post in await self.get_recent_posts(substack_id, MAX_POSTS):
            if post.get("slug") == slug:
                return post
        for post in await self.get_posts(substack_id, MAX_POSTS, MAX_POSTS):
            if post.get("slug") == slug:
                return post
        return None

    async def get_post_content(self, url: str) -> dict[str, Any]:
        """Full post (HTML body included) for a ``https://host/p/slug`` URL."""
        parsed = urlparse(url)
        parts = [part for part in parsed.path.split("/") if part]
        if not parsed.hostname or not parts:
            raise ValueError(f"Could not extract slug from URL: {url}")
        domain, slug = parsed.hostname, parts[-1]

        data = _expect_dict(await self._get_json(f"https://{domain}/api/v1/posts/{slug}"), "post")
        body = data.get("body_html")
        if not body:
            raise ValueError(f"Post body missing or restricted for {url}")

        bylines = data.get("publishedBylines") or []
        return {
            "title": data.get("title") or "Untitled",
            "author": bylines[0].get("name") if bylines else "Unknown author",
            "publish_date": data.get("post_date"),
            "contentHtml": body,
            "canonical_url": data.get("canonical_url"),
            "substackDomain": domain,
            "slug": slug,
        }

    async def get_latest_post_content(self, substack_id: str) -> dict[str, Any] | None:
        posts = await self.get_recent_posts(substack_id, 1)
        if not posts:
            return None
        return await self.get_post_content(post_url(substack_id, posts[0]["slug"]))

    async def search_posts(self, substack_id: str, term: str, limit: int = 10) -> list[dict[str, Any]]:
        """Case-insensitive match on title, subtitle and teaser text.

        The API has no search endpoint, so this scans the latest 50 posts.
        """
        needle = term.lower()
        matches = [
            post
            for post in await self.get_posts(substack_id, MAX_POSTS)
            if any(
                needle in (post.get(key) or "").lower()
                for key in ("title", "subtitle", "truncated_body_text")
            )
        ]
        return matches[: int(clamp(limit, 1, MAX_POSTS))]

    async def get_comments(self, substack_id: str, post_id: str) -> list[dict[str, Any]]:
        domain = normalize_substack_id(substack_id)
        data = _expect_dict(
            await self._get_json(f"https://{domain}/api/v1/post/{post_id}/comments"),
            "comments",
        )
        return data.get("comments") or []

    # --- Publication ---------------------------------------------------------
    async def get_publication_info(self, substack_id: str) -> dict[str, Any] | None:
        """Publication details, pieced together from the newest post."""
        domain = normalize_substack_id(substack_id)
        posts = await self.get_recent_posts(substack_id, 1)
        if not posts:
            return None
        first = posts[0]

        bylines = first.get("publishedBylines") or []
        if bylines:
            byline = bylines[0]
            author = {
                "id": byline.get("id"),
                "name": byline.get("name"),
                "handle": byline.get("handle"),
                "photo_url": byline.get("photo_url"),
                "bio": byline.get("bio"),
            }
            for pub_user in byline.get("publicationUsers") or []:
                publication = pub_user.get("publication") or {}
                if domain in (
                    f"{publication.get('subdomain')}.{SUBSTACK_DOMAIN}",
                    publication.get("custom_domain"),
                ):
                    return {
                        "id": publication.get("id"),
                        "name": publication.get("name"),
                        "subdomain": publication.get("subdomain"),
                        "custom_domain": publication.get("custom_domain"),
                        "description": publication.get("hero_text"),
                        "logo_url": publication.get("logo_url"),
                        "author": author,
                    }
            return author

        canonical = first.get("canonical_url")
        host = urlparse(canonical).hostname if canonical else None
        info: dict[str, Any] = {
            "domain": host or domain,
            "name": (host or domain).split(".")[0],
            "post_sample": {
                "id": first.get("id"),
                "title": first.get("title"),
                "subtitle": first.get("subtitle"),
                "post_date": first.get("post_date"),
            },
        }
        if first.get("publication_id"):
            info["id"] = first["publication_id"]
        if canonical:
            info["canonical_url"] = canonical
        return info

    async def get_newsletter_authors(self, substack_id: str) -> list[dict[str, Any]]:
        domain = normalize_substack_id(substack_id)
        data = _expect_list(
            await self._get_json(
                f"https://{domain}/api/v1/publication/users/ranked",
                params={"public": "true"},
            ),
            "authors",
        )
        return [
            {
                "id": author.get("id"),
                "name": author.get("name"),
                "handle": author.get("handle"),
                "photo_url": author.get("photo_url"),
                "bio": author.get("bio"),
            }
            for author in data
        ]

    async def get_newsletter_recommendations(self, substack_id: str) -> list[dict[str, Any]]:
        domain = normalize_substack_id(substack_id)
        posts = await self.get_recent_posts(substack_id, 1)
        if not posts or not posts[0].get("publication_id"):
            raise ValueError(f"Could not find publication ID for {substack_id}")

        publication_id = posts[0]["publication_id"]
        data = await self._get_json(f"https://{domain}/api/v1/recommendations/from/{publication_id}")
        if not data:
            return []
        recommendations = []
        for item in _expect_list(data, "recommendations"):
            publication = item.get("recommendedPublication") or {}
            recommendations.append(
                {
                    "name": publication.get("name") or "",
                    "domain": publication_domain(publication),
                    "subdomain": publication.get("subdomain"),
                    "custom_domain": publication.get("custom_domain"),
                }
            )
        return recommendations

    # --- Directory -----------------------------------------------------------
    async def list_categories(self) -> list[dict[str, Any]]:
        data = _expect_list(await self._get_json(f"{API_ROOT}/categories"), "categories")
        return [{"id": category.get("id"), "name": category.get("name")} for category in data]

    async def get_category_newsletters(
        self, category_id: int, page: int = 0, limit: int = 20
    ) -> list[dict[str, Any]]:
        page = int(clamp(page, 0, MAX_CATEGORY_PAGE))
        data = _expect_dict(
            await self._get_json(
                f"{API_ROOT}/category/public/{category_id}/all",
                params={"page": page},
            ),
            "category newsletters",
        )
        publications = data.get("publications") or []
        return [
            {
                "name": publication.get("name") or "",
                "domain": publication_domain(publication),
                "subdomain": publication.get("subdomain"),
                "custom_domain": publication.get("custom_domain"),
            }
            for publication in publications[: max(1, limit)]
        ]

    async def get_user_profile(self, username: str) -> dict[str, Any]:
        data = await self._get_json(f"{API_ROOT}/user/{username}/public_profile")
        if not data:
            raise ValueError(f"User profile not found for username: {username}")
        data = _expect_dict(data, "user profile")

        subscriptions = []
        for subscription in data.get("subscriptions") or []:
            publication = subscription.get("publication") or {}
            subscriptions.append(
                {
                    "publication_id": publication.get("id"),
                    "publication_name": publication.get("name"),
                    "domain": publication_domain(publication),
                    "membership_state": subscription.get("membership_state"),
                }
            )
        return {
            "id": data.get("id"),
            "name": data.get("name"),
            "handle": username,
            "bio": data.get("bio"),
            "photo_url": data.get("photo_url"),
            "profile_set_up_at": data.get("profile_set_up_at"),
            "subscriptions": subscriptions,
        }
