"""GitLab client for contribution counters shown on milestones."""

import logging
from typing import Optional

import httpx

from internlink.core.config import settings

logger = logging.getLogger(__name__)


class GitLabClient:
    """
    Read-only client for a user's GitLab activity.

    Counters are advisory: when the client is disabled (no token) or GitLab
    fails, every counter reads as zero and the failure is logged.
    """

    API_PATH = "/api/v4"
    PAGE_SIZE = 100
    MAX_PAGES = 10

    def __init__(self, base_url: str = None, token: str = None, timeout: float = 10.0):
        self.base_url = (base_url or settings.GITLAB_URL).rstrip("/")
        self.token = settings.GITLAB_TOKEN if token is None else token
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict:
        return {"PRIVATE-TOKEN": self.token}

    async def _count_pages(self, client: httpx.AsyncClient, path: str, params: dict) -> int:
        total = 0
        for page in range(1, self.MAX_PAGES + 1):
            response = await client.get(
                f"{self.base_url}{self.API_PATH}{path}",
                params={**params, "per_page": self.PAGE_SIZE, "page": page},
                headers=self._headers(),
            )
            response.raise_for_status()

            header_total = response.headers.get("X-Total")
            if header_total and header_total.isdigit():
                return int(header_total)

            items = response.json()
            total += len(items)
            if len(items) < self.PAGE_SIZE:
                break
        return total

    async def get_contribution_counts(self, gitlab_id: Optional[str]) -> dict:
        """Return {"commits": int, "mergeRequests": int} for a GitLab user id."""
        counts = {"commits": 0, "mergeRequests": 0}
        if not self.enabled or not gitlab_id:
            return counts

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                counts["commits"] = await self._count_pages(
                    client,
                    f"/users/{gitlab_id}/events",
                    {"action": "pushed"},
                )
                counts["mergeRequests"] = await self._count_pages(
                    client,
                    "/merge_requests",
                    {"author_id": gitlab_id, "scope": "all"},
                )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"⚠️ GitLab counters unavailable for user {gitlab_id}: {str(e)}")
            return {"commits": 0, "mergeRequests": 0}

        return counts


gitlab_client = GitLabClient()
