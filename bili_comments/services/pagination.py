"""Comment page aggregation, page metadata and API error messages."""

import math
from typing import Optional

from bili_comments.core.exceptions import ApiError
from bili_comments.core.i18n_manager import I18nManager
from bili_comments.core.types import Comment, PageMeta

DEFAULT_PAGE_SIZE = 20

# Envelope codes with a local message under api_errors.<code> in the locale files;
# any other code keeps the platform's message
API_ERROR_CODES = (-101, -403, -404, -500, 65531)


def get_api_error_message(code, default_message: str, i18n: Optional[I18nManager] = None) -> str:
    try:
        code = int(code)
    except (TypeError, ValueError):
        return default_message
    if code not in API_ERROR_CODES:
        return default_message

    i18n = i18n or I18nManager().ensure_loaded()
    key = f"api_errors.{code}"
    message = i18n.get(key)
    return default_message if message == key else message


def ensure_success(
    envelope: dict,
    context: Optional[str] = None,
    i18n: Optional[I18nManager] = None,
) -> dict:
    """Return ``envelope["data"]`` or raise ApiError for a non-zero code."""
    code = envelope.get("code")
    if code != 0:
        message = get_api_error_message(code, envelope.get("message", ""), i18n=i18n)
        raise ApiError(code, message, context=context)
    return envelope.get("data") or {}


def aggregate_comments(page_data: dict) -> list[Comment]:
    """Promoted ("hots") comments first, then the normal list, platform order kept."""
    raw = list(page_data.get("hots") or []) + list(page_data.get("replies") or [])
    return [Comment.from_payload(item) for item in raw]


def build_pagination(page_data: dict) -> PageMeta:
    page = page_data.get("page") or {}
    current_page = _value_or(page.get("num"), 1)
    total_count = _value_or(page.get("count"), 0)
    page_size = _value_or(page.get("size"), DEFAULT_PAGE_SIZE)
    total_pages = math.ceil(total_count / page_size) if page_size > 0 else 1
    return PageMeta(
        current_page=current_page,
        total_pages=total_pages,
        total_count=total_count,
        page_size=page_size,
    )


def _value_or(value, default):
    return default if value is None else value
