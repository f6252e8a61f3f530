"""Markdown rendering of an enriched comment page for human readers."""

from datetime import datetime
from typing import Optional, Sequence

from bili_comments.core.i18n_manager import I18nManager
from bili_comments.core.types import EnrichedComment, PageMeta


def _format_time(timestamp: int, pattern: str) -> str:
    return datetime.fromtimestamp(timestamp).strftime(pattern)


def format_comment_block(item: EnrichedComment, i18n: I18nManager) -> str:
    """One comment, its replies (or the failure notice) and a separator."""
    comment = item.comment
    body = comment.body.replace("\n", "\n> ")
    md = i18n.get(
        "markdown.comment_header",
        name=comment.author.name,
        level=comment.author.level,
        likes=comment.like_count,
        time=_format_time(comment.created_at, "%Y/%m/%d %H:%M:%S"),
    ) + "\n"
    md += f"> {body}\n"

    if item.replies_failed:
        md += i18n.get("markdown.replies_failed") + "\n"
    elif item.loaded_replies:
        replies = item.loaded_replies
        md += "\n" + i18n.get("markdown.replies_header", total=comment.reply_count, shown=len(replies)) + "\n"
        for reply in replies:
            md += i18n.get(
                "markdown.reply_line",
                name=reply.author.name,
                body=reply.body,
                likes=reply.like_count,
                time=_format_time(reply.created_at, "%m/%d %H:%M"),
            ) + "\n"
        if comment.reply_count > len(replies):
            md += i18n.get("markdown.more_replies", remaining=comment.reply_count - len(replies)) + "\n"

    md += "\n---\n\n"
    return md


def build_pagination_footer(meta: PageMeta, i18n: I18nManager) -> str:
    md = i18n.get("markdown.page_loaded", page=meta.current_page) + "\n"
    if meta.has_next_page:
        md += i18n.get("markdown.next_page_hint", next=meta.current_page + 1)
    else:
        md += i18n.get("markdown.last_page")
    return md


def _render(
    header_lines: list[str],
    enriched: Sequence[EnrichedComment],
    meta: PageMeta,
    empty_hint_key: str,
    i18n: I18nManager,
) -> str:
    md = "\n".join(header_lines) + "\n"
    md += i18n.get("markdown.current_page", current=meta.current_page, total=meta.total_pages) + "\n"
    md += i18n.get("markdown.total_count", count=meta.total_count) + "\n\n"

    if not enriched:
        md += i18n.get("markdown.empty_page") + "\n\n"
        md += i18n.get(empty_hint_key)
        return md

    md += i18n.get("markdown.comment_list") + "\n"
    for item in enriched:
        md += format_comment_block(item, i18n)

    md += "---\n\n"
    md += build_pagination_footer(meta, i18n)
    return md


def render_video_markdown(
    enriched: Sequence[EnrichedComment],
    meta: PageMeta,
    i18n: Optional[I18nManager] = None,
) -> str:
    i18n = i18n or I18nManager().ensure_loaded()
    header = [i18n.get("markdown.video_title"), ""]
    return _render(header, enriched, meta, "markdown.empty_hint_video", i18n)


def render_dynamic_markdown(
    enriched: Sequence[EnrichedComment],
    meta: PageMeta,
    kind: str = "regular",
    i18n: Optional[I18nManager] = None,
) -> str:
    i18n = i18n or I18nManager().ensure_loaded()
    header = [
        i18n.get("markdown.dynamic_title"),
        "",
        i18n.get("markdown.dynamic_kind", kind=i18n.get(f"dynamic_kinds.{kind}")),
    ]
    return _render(header, enriched, meta, "markdown.empty_hint_dynamic", i18n)
