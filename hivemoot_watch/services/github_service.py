"""GitHub REST API service for notifications and comments."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..errors import ErrorCode, WatchError
from ..models import CommentDetail, RawNotification

logger = logging.getLogger(__name__)

WATCHED_SUBJECT_TYPES = ("Issue", "PullRequest")


class GitHubService:
    """GitHub API interactions using a personal access token."""

    GITHUB_API_BASE = "https://api.github.com"
    PAGE_SIZE = 50

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: str = GITHUB_API_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize GitHub service.

        Args:
            token: Personal access token (notifications need a user token).
            api_base: REST API base URL.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        logger.debug("GitHubService initialized for %s (token=%s)", self.api_base, bool(token))

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Issue a request and translate failures into WatchError.

        Raises:
            WatchError: On transport errors or non-2xx responses.
        """
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response) from e
        except httpx.RequestError as e:
            raise WatchError(f"GitHub request failed: {e}", ErrorCode.GH_ERROR, 1) from e

    @staticmethod
    def _status_error(response: httpx.Response) -> WatchError:
        status = response.status_code
        text = response.text

        if status == 401:
            return WatchError(
                "Not authenticated. Pass --github-token <token> or set GITHUB_TOKEN",
                ErrorCode.GH_NOT_AUTHENTICATED,
                2,
            )

        rate_limited = status == 429 or (
            status == 403
            and (response.headers.get("x-ratelimit-remaining") == "0" or "rate limit" in text.lower())
        )
        if rate_limited:
            return WatchError("GitHub rate limited. Try again later.", ErrorCode.RATE_LIMITED, 3)

        return WatchError(f"GitHub API error (HTTP {status}): {text}", ErrorCode.GH_ERROR, 1)

    async def get_current_user(self) -> str:
        """
        Return the login of the authenticated user.

        Raises:
            WatchError: If the user can't be determined.
        """
        async with self._client() as client:
            response = await self._request(client, "GET", "/user")

        try:
            data = response.json()
        except ValueError:
            data = None

        login = data.get("login") if isinstance(data, dict) else None
        if not login:
            raise WatchError(
                "Could not determine GitHub username. Pass --github-token <token> or set GITHUB_TOKEN",
                ErrorCode.GH_NOT_AUTHENTICATED,
                2,
            )
        return login

    async def fetch_mention_notifications(
        self, repo: str, reasons: list[str]
    ) -> list[RawNotification]:
        """
        Fetch unread notifications for a repository, filtered by reason.

        Only Issue and PullRequest subjects are returned. Relies on GitHub's
        unread filter (``all=false``) rather than a ``since`` cursor.

        Args:
            repo: Repository name in format "owner/repo".
            reasons: Notification reasons of interest (e.g. ["mention"]).

        Returns:
            Notifications in the order GitHub returned them.

        Raises:
            WatchError: If any page fails to load.
        """
        logger.debug("Fetching notifications for %s (reasons=%s)", repo, ",".join(reasons))

        raw_items: list[dict[str, Any]] = []
        url: Optional[str] = f"/repos/{repo}/notifications"
        params: Optional[dict[str, Any]] = {"all": "false", "per_page": self.PAGE_SIZE}

        async with self._client() as client:
            while url:
                response = await self._request(client, "GET", url, params=params)
                raw_items.extend(response.json())
                # The next link already carries the query string
                url = response.links.get("next", {}).get("url")
                params = None

        notifications: list[RawNotification] = []
        for item in raw_items:
            try:
                notification = RawNotification.model_validate(item)
            except ValidationError as e:
                logger.warning("Skipping malformed notification %s: %s", item.get("id"), e)
                continue

            if not notification.unread:
                continue
            if notification.reason not in reasons:
                continue
            if notification.subject.type not in WATCHED_SUBJECT_TYPES:
                continue
            notifications.append(notification)

        logger.debug("Fetched %d matching notification(s) of %d", len(notifications), len(raw_items))
        return notifications

    async def fetch_comment(self, comment_url: Optional[str]) -> Optional[CommentDetail]:
        """
        Fetch the comment body, author and permalink.

        Args:
            comment_url: Comment API URL (``subject.latest_comment_url``).

        Returns:
            CommentDetail, or None if the URL is missing or the fetch fails.
        """
        if not comment_url:
            return None

        try:
            async with self._client() as client:
                response = await self._request(client, "GET", comment_url)
            data = response.json()
        except Exception as e:
            logger.debug("Failed to fetch comment %s: %s", comment_url, e)
            return None

        if not isinstance(data, dict):
            return None

        user = data.get("user") or data.get("author")
        if not isinstance(user, dict):
            user = {}
        return CommentDetail(
            body=data.get("body") or "",
            author=user.get("login") or "unknown",
            html_url=data.get("html_url") or "",
        )

    async def mark_notification_read(self, thread_id: str) -> None:
        """
        Mark a single notification thread as read.

        Raises:
            WatchError: If the request fails.
        """
        async with self._client() as client:
            await self._request(client, "PATCH", f"/notifications/threads/{quote(thread_id, safe='')}")
        logger.debug("Marked notification thread %s as read", thread_id)
