"""Cookie resolution and identifier checks for tool arguments."""

import os
import re
from typing import Any, Optional

SESSDATA_ENV = "BILIBILI_SESSDATA"

_BVID_PATTERN = re.compile(r"^BV[0-9A-Za-z]{10}$")
_DIGITS_PATTERN = re.compile(r"^\d+$")


def validate_cookie(cookie: Any) -> bool:
    """A usable cookie is a non-empty string carrying SESSDATA."""
    return bool(cookie) and isinstance(cookie, str) and "SESSDATA" in cookie


def build_cookie_from_sessdata(sessdata: str) -> str:
    return f"SESSDATA={sessdata}"


def get_valid_cookie(cookie_param: Optional[str] = None) -> Optional[str]:
    """Pick the cookie to send.

    The explicit argument wins if valid; otherwise BILIBILI_SESSDATA from the
    environment is wrapped into a cookie. Returns None when neither is usable.
    """
    if validate_cookie(cookie_param):
        return cookie_param

    sessdata = os.environ.get(SESSDATA_ENV, "")
    if sessdata.strip():
        return build_cookie_from_sessdata(sessdata.strip())

    return None


def validate_bvid(bvid: Any) -> bool:
    return isinstance(bvid, str) and bool(_BVID_PATTERN.match(bvid))


def validate_aid(aid: Any) -> bool:
    if isinstance(aid, bool):
        return False
    if isinstance(aid, int):
        return aid > 0
    return isinstance(aid, str) and bool(_DIGITS_PATTERN.match(aid)) and int(aid) > 0


def validate_dynamic_id(dynamic_id: Any) -> bool:
    """Dynamic ids are long numeric strings (at least 10 digits)."""
    return (
        isinstance(dynamic_id, str)
        and bool(_DIGITS_PATTERN.match(dynamic_id))
        and len(dynamic_id) >= 10
    )
