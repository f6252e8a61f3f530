"""Abstract base class for Bilibili data access."""

from abc import ABC, abstractmethod
from typing import Optional

from bili_comments.core.types import DynamicDetail, RepliesResult, VideoInfo


class BilibiliAdapter(ABC):
    """Abstract interface for fetching Bilibili comment data."""

    @abstractmethod
    async def get_video_info(self, bvid: str, cookie: str) -> VideoInfo:
        """Resolve a BV id to the numeric aid the comment endpoint expects.

        Raises:
            ApiError: non-zero response code
            RequestFailedError / RequestTimeoutError: retries exhausted
        """
        ...

    @abstractmethod
    async def get_dynamic_detail(self, dynamic_id: str, cookie: str) -> DynamicDetail:
        """Resolve a dynamic id to its comment oid and comment type.

        Raises:
            ApiError: non-zero response code
            RequestFailedError / RequestTimeoutError: retries exhausted
        """
        ...

    @abstractmethod
    async def fetch_comment_page(
        self,
        oid,
        page: int,
        page_size: int,
        cookie: str,
        comment_type: int = 1,
        sort: Optional[int] = None,
    ) -> dict:
        """Fetch one page of top-level comments (signed).

        Args:
            oid: Comment object id (aid for videos)
            page: 1-based page number
            page_size: Requested size, clamped to 49
            cookie: Cookie header value
            comment_type: 1 for videos, 11/17/... for dynamics
            sort: 0 by time, 1 by popularity; omitted when None

        Returns:
            The raw response envelope {code, message, data}. The caller checks code.

        Raises:
            RequestFailedError / RequestTimeoutError: retries exhausted
        """
        ...

    @abstractmethod
    async def fetch_replies(self, oid, root, cookie: str, comment_type: int = 1) -> RepliesResult:
        """Fetch up to 10 nested replies under comment ``root`` (signed).

        Never raises for network failures: exhausted retries yield FetchFailed.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...
