"""Bilibili web API adapter: aiohttp transport, WBI signing and retries."""

import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from bili_comments.adapters.bilibili_adapter import BilibiliAdapter
from bili_comments.core.exceptions import ApiError, DataError, SigningKeyError
from bili_comments.core.retry import RetryPolicy, with_retry
from bili_comments.core.signing import (
    KEY_CACHE_TTL_SEC,
    WbiKeyCache,
    WbiSigner,
    extract_key_from_url,
)
from bili_comments.core.types import (
    DynamicDetail,
    Reply,
    RepliesResult,
    SigningKeyPair,
    VideoInfo,
)

logger = logging.getLogger("bili_comments")

API_BASE = "https://api.bilibili.com"

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Origin": "https://www.bilibili.com",
}

DYNAMIC_KINDS = {
    "DYNAMIC_TYPE_AV": "video",
    "DYNAMIC_TYPE_DRAW": "image",
    "DYNAMIC_TYPE_WORD": "text",
    "DYNAMIC_TYPE_ARTICLE": "article",
    "DYNAMIC_TYPE_FORWARD": "forward",
}

# Comment area type used by plain dynamics when the detail omits it
DEFAULT_DYNAMIC_COMMENT_TYPE = 17


class WebApiAdapter(BilibiliAdapter):
    """Fetches comment data from api.bilibili.com.

    Every call is wrapped in with_retry. Comment and reply requests are WBI
    signed; the key pair is cached on the adapter, which the application
    creates once per process.
    """

    VIEW_URL = f"{API_BASE}/x/web-interface/view"
    NAV_URL = f"{API_BASE}/x/web-interface/nav"
    REPLY_URL = f"{API_BASE}/x/v2/reply"
    REPLY_REPLY_URL = f"{API_BASE}/x/v2/reply/reply"
    DYNAMIC_DETAIL_URL = f"{API_BASE}/x/polymer/web-dynamic/v1/detail"

    MAX_PAGE_SIZE = 49
    MAX_REPLY_PAGE_SIZE = 10

    def __init__(
        self,
        timeout_sec: float = 15,
        page_timeout_sec: float = 10,
        reply_timeout_sec: float = 10,
        max_attempts: int = 3,
        retry_delay_ms: int = 1000,
        key_cache_ttl_sec: float = KEY_CACHE_TTL_SEC,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._timeout = timeout_sec
        self._page_timeout = page_timeout_sec
        self._reply_timeout = reply_timeout_sec
        self._max_attempts = max_attempts
        self._retry_delay_ms = retry_delay_ms
        self._session = session
        self._signer = WbiSigner(WbiKeyCache(self._fetch_wbi_keys, ttl_sec=key_cache_ttl_sec))

    async def __aenter__(self) -> "WebApiAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def signer(self) -> WbiSigner:
        return self._signer

    async def get_video_info(self, bvid: str, cookie: str) -> VideoInfo:
        envelope = await self._retry(
            lambda: self._get_json(
                self.VIEW_URL,
                {"bvid": bvid},
                cookie,
                referer=f"https://www.bilibili.com/video/{bvid}",
            ),
            "Failed to fetch video info",
        )
        self._raise_for_code(envelope, "Failed to fetch video info")

        data = envelope.get("data") or {}
        aid = data.get("aid")
        if aid is None:
            raise DataError(f"Video info for {bvid} carries no aid")
        return VideoInfo(aid=aid, title=data.get("title", ""))

    async def get_dynamic_detail(self, dynamic_id: str, cookie: str) -> DynamicDetail:
        envelope = await self._retry(
            lambda: self._get_json(
                self.DYNAMIC_DETAIL_URL,
                {"id": dynamic_id},
                cookie,
                referer=f"https://t.bilibili.com/{dynamic_id}",
                timeout=self._page_timeout,
            ),
            "Failed to fetch dynamic detail",
        )
        self._raise_for_code(envelope, "Failed to fetch dynamic detail")

        item = (envelope.get("data") or {}).get("item") or {}
        basic = item.get("basic") or {}
        comment_type = basic.get("comment_type")
        return DynamicDetail(
            kind=DYNAMIC_KINDS.get(item.get("type"), "regular"),
            oid=basic.get("comment_id_str") or dynamic_id,
            comment_type=DEFAULT_DYNAMIC_COMMENT_TYPE if comment_type is None else comment_type,
            original_type=item.get("type"),
        )

    async def fetch_comment_page(
        self,
        oid,
        page: int,
        page_size: int,
        cookie: str,
        comment_type: int = 1,
        sort: Optional[int] = None,
    ) -> dict:
        params = {
            "type": comment_type,
            "oid": oid,
            "pn": page,
            "ps": min(page_size, self.MAX_PAGE_SIZE),
        }
        if sort is not None:
            params["sort"] = sort

        async def operation() -> dict:
            signed = await self._signer.sign(params, cookie)
            return await self._get_json(self.REPLY_URL, signed, cookie, timeout=self._page_timeout)

        return await self._retry(operation, "Failed to fetch comments")

    async def fetch_replies(self, oid, root, cookie: str, comment_type: int = 1) -> RepliesResult:
        params = {
            "type": comment_type,
            "oid": oid,
            "root": root,
            "ps": self.MAX_REPLY_PAGE_SIZE,
        }

        async def operation() -> tuple[Reply, ...]:
            signed = await self._signer.sign(params, cookie)
            envelope = await self._get_json(self.REPLY_REPLY_URL, signed, cookie, timeout=self._reply_timeout)
            if envelope.get("code") != 0:
                logger.debug(f"Replies for rpid {root} unavailable ({envelope.get('code')}): {envelope.get('message')}")
                return ()
            raw_replies = (envelope.get("data") or {}).get("replies") or []
            return tuple(Reply.from_payload(raw) for raw in raw_replies)

        return await self._retry(operation, f"Failed to fetch replies (rpid: {root})", soft_fail=True)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _fetch_wbi_keys(self, cookie: str) -> SigningKeyPair:
        """Read img_key/sub_key from the nav endpoint. Not retried here."""
        envelope = await self._get_json(self.NAV_URL, {}, cookie, timeout=self._page_timeout)
        if envelope.get("code") != 0:
            raise SigningKeyError(
                f"Failed to obtain WBI keys ({envelope.get('code')}): {envelope.get('message')}"
            )

        wbi_img = (envelope.get("data") or {}).get("wbi_img") or {}
        img_url, sub_url = wbi_img.get("img_url"), wbi_img.get("sub_url")
        if not img_url or not sub_url:
            raise SigningKeyError("Nav response carries no wbi_img URLs")

        return SigningKeyPair(
            img_key=extract_key_from_url(img_url),
            sub_key=extract_key_from_url(sub_url),
        )

    async def _retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        label: str,
        soft_fail: bool = False,
    ):
        policy = RetryPolicy(
            max_attempts=self._max_attempts,
            delay_ms=self._retry_delay_ms,
            error_label=label,
            soft_fail=soft_fail,
        )
        return await with_retry(operation, policy)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=DEFAULT_HEADERS,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    async def _get_json(
        self,
        url: str,
        params: dict,
        cookie: str,
        referer: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """GET ``url`` and decode the JSON envelope.

        HTTP errors (4xx/5xx) raise aiohttp.ClientResponseError so that the
        surrounding retry treats them as transient.
        """
        headers = {"Cookie": cookie}
        if referer:
            headers["Referer"] = referer

        # Without an explicit timeout the session default applies
        extra = {"timeout": aiohttp.ClientTimeout(total=timeout)} if timeout else {}
        async with self._get_session().get(url, params=params, headers=headers, **extra) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    @staticmethod
    def _raise_for_code(envelope: dict, context: str) -> None:
        code = envelope.get("code")
        if code != 0:
            raise ApiError(code, envelope.get("message", ""), context=context)
