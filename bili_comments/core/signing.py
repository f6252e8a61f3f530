"""WBI request signing.

Bilibili's web endpoints require two extra query parameters: ``wts`` (unix
seconds) and ``w_rid`` (an MD5 digest). The digest is computed as follows:

1. ``img_key`` and ``sub_key`` are taken from the image URLs returned by
   ``/x/web-interface/nav`` (file name without extension).
2. ``img_key + sub_key`` is reordered through MIXIN_KEY_ENC_TAB and cut to
   32 characters, giving the mixin key.
3. Parameters plus ``wts`` are sorted by key, the characters ``!'()*`` are
   removed from values, everything is percent-encoded and joined into a query
   string; ``w_rid = md5(query + mixin_key)``.
"""

import asyncio
import hashlib
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import quote, urlparse

from bili_comments.core.types import SigningKeyPair

logger = logging.getLogger("bili_comments")

# Fixed reorder table published by the platform. Must not change.
MIXIN_KEY_ENC_TAB = (
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35,
    27, 43, 5, 49, 33, 9, 42, 19, 29, 28, 14, 39, 12, 38, 41, 13,
    37, 48, 7, 16, 24, 55, 40, 61, 26, 17, 0, 1, 60, 51, 30, 4,
    22, 25, 54, 21, 56, 59, 6, 63, 57, 62, 11, 36, 20, 34, 44, 52,
)

KEY_CACHE_TTL_SEC = 12 * 60 * 60

_STRIPPED_CHARS = str.maketrans("", "", "!'()*")

# Same unescaped set as JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "!*'()"

KeyFetcher = Callable[[str], Awaitable[SigningKeyPair]]


def get_mixin_key(img_key: str, sub_key: str) -> str:
    """Reorder the concatenated key fragments and keep the first 32 characters."""
    raw_key = img_key + sub_key
    return "".join(raw_key[index] for index in MIXIN_KEY_ENC_TAB)[:32]


def extract_key_from_url(url: str) -> str:
    """'https://i0.hdslb.com/bfs/wbi/7cd0...077c.png' -> '7cd0...077c'"""
    filename = urlparse(url).path.rsplit("/", 1)[-1]
    return filename.split(".", 1)[0]


def build_query(params: Mapping[str, Any]) -> str:
    """Sorted, filtered and percent-encoded query string used for the digest."""
    parts = []
    for key in sorted(params):
        value = str(params[key]).translate(_STRIPPED_CHARS)
        parts.append(f"{quote(str(key), safe=_URI_COMPONENT_SAFE)}={quote(value, safe=_URI_COMPONENT_SAFE)}")
    return "&".join(parts)


def sign_params(params: Mapping[str, Any], mixin_key: str, wts: Optional[int] = None) -> dict:
    """Return a copy of ``params`` with ``wts`` and ``w_rid`` added.

    Deterministic for a given (params, mixin_key, wts).
    """
    if wts is None:
        wts = int(time.time())
    signed = dict(params)
    signed["wts"] = wts
    query = build_query(signed)
    signed["w_rid"] = hashlib.md5((query + mixin_key).encode("utf-8")).hexdigest()
    return signed


class WbiKeyCache:
    """Process-wide cache of the WBI key pair with a fixed validity window.

    A miss starts one refill; callers arriving while it is in flight await
    the same task instead of issuing their own nav request.
    """

    def __init__(
        self,
        fetch_keys: KeyFetcher,
        ttl_sec: float = KEY_CACHE_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_keys = fetch_keys
        self._ttl = ttl_sec
        self._clock = clock
        self._keys: Optional[SigningKeyPair] = None
        self._fetched_at = 0.0
        self._refill: Optional[asyncio.Task] = None

    @property
    def keys(self) -> Optional[SigningKeyPair]:
        """Currently cached pair if still valid."""
        if self._keys is not None and self._clock() - self._fetched_at < self._ttl:
            return self._keys
        return None

    async def get(self, cookie: str) -> SigningKeyPair:
        cached = self.keys
        if cached is not None:
            return cached

        if self._refill is None or self._refill.done():
            logger.debug("WBI keys missing or expired, fetching from nav endpoint")
            self._refill = asyncio.ensure_future(self._load(cookie))
        # shield: one cancelled waiter must not cancel the refill for the others
        return await asyncio.shield(self._refill)

    async def _load(self, cookie: str) -> SigningKeyPair:
        keys = await self._fetch_keys(cookie)
        self._keys = keys
        self._fetched_at = self._clock()
        logger.info("WBI keys refreshed")
        return keys

    def clear(self) -> None:
        """Drop the cached pair. The next call to get() refetches."""
        self._keys = None
        self._fetched_at = 0.0
        self._refill = None


class WbiSigner:
    """Signs request parameters using keys from a WbiKeyCache."""

    def __init__(self, key_cache: WbiKeyCache):
        self._key_cache = key_cache

    @property
    def key_cache(self) -> WbiKeyCache:
        return self._key_cache

    async def sign(self, params: Mapping[str, Any], cookie: str) -> dict:
        keys = await self._key_cache.get(cookie)
        mixin_key = get_mixin_key(keys.img_key, keys.sub_key)
        return sign_params(params, mixin_key)
