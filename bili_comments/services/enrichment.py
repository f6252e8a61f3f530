"""Attach nested replies to a page of comments with bounded concurrency."""

import asyncio
import logging
import weakref
from typing import Awaitable, Callable, Optional, Sequence

from bili_comments.core.types import Comment, EnrichedComment, FetchFailed, RepliesResult

logger = logging.getLogger("bili_comments")

MAX_CONCURRENT_REPLY_FETCHES = 10

ReplyFetcher = Callable[[Comment], Awaitable[RepliesResult]]


class FetchLimiter:
    """Counting semaphore with a fixed ceiling on in-flight reply fetches.

    asyncio primitives belong to one event loop, so a semaphore is kept per
    running loop. Within a loop every caller shares the same budget.
    """

    def __init__(self, limit: int = MAX_CONCURRENT_REPLY_FETCHES):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = limit
        self._semaphores: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Semaphore]" = (
            weakref.WeakKeyDictionary()
        )
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def _semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        semaphore = self._semaphores.get(loop)
        if semaphore is None:
            semaphore = asyncio.Semaphore(self.limit)
            self._semaphores[loop] = semaphore
        return semaphore

    async def run(self, fetch: Callable[[], Awaitable[RepliesResult]]) -> RepliesResult:
        async with self._semaphore():
            self._in_flight += 1
            try:
                return await fetch()
            finally:
                self._in_flight -= 1


# Shared by every enrichment in the process, not scoped per request
shared_limiter = FetchLimiter()


async def enrich_comments(
    comments: Sequence[Comment],
    fetch_replies: ReplyFetcher,
    include_replies: bool = True,
    limiter: Optional[FetchLimiter] = None,
) -> list[EnrichedComment]:
    """Pair every comment with its nested replies.

    Comments without replies (or all comments when include_replies is off)
    get an empty tuple without a network call. Output index i always belongs
    to input index i. A fetch that raises only marks its own comment failed.
    """
    limiter = limiter or shared_limiter

    async def replies_for(comment: Comment) -> RepliesResult:
        if not include_replies or comment.reply_count <= 0:
            return ()
        return await limiter.run(lambda: fetch_replies(comment))

    results = await asyncio.gather(
        *(replies_for(comment) for comment in comments),
        return_exceptions=True,
    )

    enriched = []
    for comment, result in zip(comments, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning(f"Reply fetch for rpid {comment.id} raised {type(result).__name__}: {result}")
            result = FetchFailed(label=f"Failed to fetch replies (rpid: {comment.id})", reason=str(result))
        elif not isinstance(result, FetchFailed):
            result = tuple(result)
        enriched.append(EnrichedComment(comment=comment, replies=result))

    failed = sum(1 for item in enriched if item.replies_failed)
    if failed:
        logger.info(f"Enriched {len(enriched)} comments, {failed} reply fetch(es) failed")
    return enriched
