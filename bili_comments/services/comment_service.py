"""Comment tools: validate arguments, fetch, enrich and render one page."""

import json
import logging
from typing import Optional

from bili_comments.adapters.bilibili_adapter import BilibiliAdapter
from bili_comments.core.credentials import (
    SESSDATA_ENV,
    get_valid_cookie,
    validate_aid,
    validate_bvid,
    validate_dynamic_id,
)
from bili_comments.core.exceptions import ApiError, BiliCommentsError, InvalidInputError
from bili_comments.core.i18n_manager import I18nManager
from bili_comments.formatters.json_formatter import render_json
from bili_comments.formatters.markdown_formatter import render_dynamic_markdown, render_video_markdown
from bili_comments.services.enrichment import FetchLimiter, enrich_comments
from bili_comments.services.pagination import aggregate_comments, build_pagination, ensure_success

logger = logging.getLogger("bili_comments")

OUTPUT_FORMATS = ("markdown", "json")
SORT_MODES = (0, 1)                  # 0: by time, 1: by popularity
MAX_TOOL_PAGE_SIZE = 20
VIDEO_COMMENT_TYPE = 1


class CommentService:
    """Implements the two comment tools on top of a BilibiliAdapter.

    The public methods never raise for expected failures: validation, API and
    network errors become a single "❌ ..." line for the calling agent.
    """

    def __init__(
        self,
        adapter: BilibiliAdapter,
        i18n: Optional[I18nManager] = None,
        limiter: Optional[FetchLimiter] = None,
    ):
        self._adapter = adapter
        self._i18n = i18n
        self._limiter = limiter

    @property
    def i18n(self) -> I18nManager:
        if self._i18n is None:
            self._i18n = I18nManager().ensure_loaded()
        return self._i18n

    async def get_video_comments(
        self,
        bvid: Optional[str] = None,
        aid=None,
        page: int = 1,
        page_size: int = 20,
        sort: int = 0,
        include_replies: bool = True,
        output_format: str = "markdown",
        cookie: Optional[str] = None,
    ) -> str:
        try:
            resolved_cookie = self._require_cookie(cookie)
            if not bvid and not aid:
                raise InvalidInputError("Either bvid or aid must be provided")
            if bvid and not validate_bvid(bvid):
                raise InvalidInputError(f"Invalid bvid format: {bvid}")
            if aid and not validate_aid(aid):
                raise InvalidInputError(f"Invalid aid format: {aid}")
            self._validate_paging(page, page_size, output_format)
            if sort not in SORT_MODES:
                raise InvalidInputError("sort must be 0 (by time) or 1 (by popularity)")

            oid = int(aid) if aid else None
            if oid is None:
                oid = (await self._adapter.get_video_info(bvid, resolved_cookie)).aid

            envelope = await self._adapter.fetch_comment_page(
                oid, page, page_size, resolved_cookie, comment_type=VIDEO_COMMENT_TYPE, sort=sort
            )
            page_data = ensure_success(envelope, i18n=self.i18n)

            enriched = await enrich_comments(
                aggregate_comments(page_data),
                lambda comment: self._adapter.fetch_replies(oid, comment.id, resolved_cookie),
                include_replies=include_replies,
                limiter=self._limiter,
            )
            meta = build_pagination(page_data)
            logger.info(f"Video {bvid or f'av{oid}'}: page {meta.current_page}/{meta.total_pages}, {len(enriched)} comments")

            if output_format == "json":
                return json.dumps(render_json(enriched, meta), ensure_ascii=False, indent=2)
            return render_video_markdown(enriched, meta, i18n=self.i18n)

        except BiliCommentsError as e:
            logger.error(f"get_video_comments failed: {e.message}")
            return self.i18n.get("errors.video_failed", message=e.message)
        except Exception as e:
            logger.exception(f"get_video_comments failed unexpectedly: {e}")
            return self.i18n.get("errors.video_failed", message=str(e) or type(e).__name__)

    async def get_dynamic_comments(
        self,
        dynamic_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
        include_replies: bool = True,
        output_format: str = "markdown",
        cookie: Optional[str] = None,
    ) -> str:
        try:
            resolved_cookie = self._require_cookie(cookie)
            if not dynamic_id:
                raise InvalidInputError("dynamic_id must be provided")
            if not validate_dynamic_id(dynamic_id):
                raise InvalidInputError(
                    f"Invalid dynamic_id format: {dynamic_id}. A dynamic id is a long numeric string."
                )
            self._validate_paging(page, page_size, output_format)

            detail = await self._adapter.get_dynamic_detail(dynamic_id, resolved_cookie)

            envelope = await self._adapter.fetch_comment_page(
                detail.oid, page, page_size, resolved_cookie, comment_type=detail.comment_type
            )
            try:
                page_data = ensure_success(envelope, i18n=self.i18n)
            except ApiError as e:
                if e.code == -404:
                    raise ApiError(e.code, self.i18n.get("errors.dynamic_not_found")) from e
                raise

            enriched = await enrich_comments(
                aggregate_comments(page_data),
                lambda comment: self._adapter.fetch_replies(
                    detail.oid, comment.id, resolved_cookie, comment_type=detail.comment_type
                ),
                include_replies=include_replies,
                limiter=self._limiter,
            )
            meta = build_pagination(page_data)
            logger.info(f"Dynamic {dynamic_id}: page {meta.current_page}/{meta.total_pages}, {len(enriched)} comments")

            if output_format == "json":
                return json.dumps(render_json(enriched, meta), ensure_ascii=False, indent=2)
            return render_dynamic_markdown(enriched, meta, kind=detail.kind, i18n=self.i18n)

        except BiliCommentsError as e:
            logger.error(f"get_dynamic_comments failed: {e.message}")
            return self.i18n.get("errors.dynamic_failed", message=e.message)
        except Exception as e:
            logger.exception(f"get_dynamic_comments failed unexpectedly: {e}")
            return self.i18n.get("errors.dynamic_failed", message=str(e) or type(e).__name__)

    @staticmethod
    def _require_cookie(cookie: Optional[str]) -> str:
        resolved = get_valid_cookie(cookie)
        if not resolved:
            raise InvalidInputError(
                f"A valid Bilibili cookie is required. Pass one as an argument or set {SESSDATA_ENV}."
            )
        return resolved

    @staticmethod
    def _validate_paging(page: int, page_size: int, output_format: str) -> None:
        if not isinstance(page, int) or page < 1:
            raise InvalidInputError("page must be >= 1")
        if not isinstance(page_size, int) or not 1 <= page_size <= MAX_TOOL_PAGE_SIZE:
            raise InvalidInputError(f"page_size must be between 1 and {MAX_TOOL_PAGE_SIZE}")
        if output_format not in OUTPUT_FORMATS:
            raise InvalidInputError("output_format must be markdown or json")
