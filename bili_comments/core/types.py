"""Data Transfer Objects for bili-comments."""

from dataclasses import dataclass
from typing import Optional, Union

_LOCATION_PREFIX = "IP属地："


@dataclass(frozen=True)
class Author:
    """Comment author as shown next to a comment."""

    name: str = ""
    level: int = 0                   # member.level_info.current_level
    sex: str = "unknown"             # "男" / "女" / "保密" as sent by the platform

    @classmethod
    def from_payload(cls, member: Optional[dict]) -> "Author":
        member = member or {}
        return cls(
            name=member.get("uname", ""),
            level=(member.get("level_info") or {}).get("current_level") or 0,
            sex=member.get("sex") or "unknown",
        )


@dataclass(frozen=True)
class Comment:
    """Top-level comment data transfer object."""

    id: int                          # rpid
    author: Author
    body: str = ""
    like_count: int = 0
    created_at: int = 0              # unix seconds (ctime)
    reply_count: int = 0             # rcount, nested replies on the platform
    location: str = "unknown"        # IP location label without the "IP属地：" prefix

    @classmethod
    def from_payload(cls, raw: dict) -> "Comment":
        location = ((raw.get("reply_control") or {}).get("location") or "").replace(_LOCATION_PREFIX, "")
        return cls(
            id=raw.get("rpid", 0),
            author=Author.from_payload(raw.get("member")),
            body=(raw.get("content") or {}).get("message", ""),
            like_count=raw.get("like", 0),
            created_at=raw.get("ctime", 0),
            reply_count=raw.get("rcount") or 0,
            location=location or "unknown",
        )


@dataclass(frozen=True)
class Reply:
    """Nested (sub-thread) reply under a top-level comment."""

    id: int
    author: Author
    body: str = ""
    like_count: int = 0
    created_at: int = 0

    @classmethod
    def from_payload(cls, raw: dict) -> "Reply":
        return cls(
            id=raw.get("rpid", 0),
            author=Author.from_payload(raw.get("member")),
            body=(raw.get("content") or {}).get("message", ""),
            like_count=raw.get("like", 0),
            created_at=raw.get("ctime", 0),
        )


@dataclass(frozen=True)
class FetchFailed:
    """Result of a soft-failed operation whose retries were exhausted."""

    label: str
    reason: str = ""


RepliesResult = Union[tuple[Reply, ...], FetchFailed]


@dataclass(frozen=True)
class EnrichedComment:
    """A comment paired with its nested replies, or the marker that fetching them failed."""

    comment: Comment
    replies: RepliesResult = ()

    @property
    def replies_failed(self) -> bool:
        return isinstance(self.replies, FetchFailed)

    @property
    def loaded_replies(self) -> tuple[Reply, ...]:
        """Replies that were fetched; empty when the fetch failed."""
        if isinstance(self.replies, FetchFailed):
            return ()
        return self.replies


@dataclass(frozen=True)
class PageMeta:
    """Pagination metadata derived from a comment page."""

    current_page: int
    total_pages: int
    total_count: int
    page_size: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1


@dataclass(frozen=True)
class SigningKeyPair:
    """WBI key fragments taken from the nav endpoint's image URLs."""

    img_key: str
    sub_key: str


@dataclass(frozen=True)
class VideoInfo:
    aid: int
    title: str = ""


@dataclass(frozen=True)
class DynamicDetail:
    """What the comment endpoint needs to address a dynamic's comment area."""

    kind: str                        # "video", "image", "text", "article", "forward" or "regular"
    oid: str                         # comment object id (may differ from the dynamic id)
    comment_type: int = 17
    original_type: Optional[str] = None  # raw DYNAMIC_TYPE_* value
