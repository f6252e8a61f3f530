"""JSON rendering of an enriched comment page."""

from typing import Sequence

from bili_comments.core.types import Author, Comment, EnrichedComment, PageMeta, Reply


def _format_user(author: Author) -> dict:
    return {"name": author.name, "level": author.level, "sex": author.sex}


def format_comment(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "user": _format_user(comment.author),
        "content": comment.body,
        "like": comment.like_count,
        "time": comment.created_at,
        "replyCount": comment.reply_count,
        "location": comment.location,
    }


def format_reply(reply: Reply) -> dict:
    return {
        "id": reply.id,
        "user": _format_user(reply.author),
        "content": reply.body,
        "like": reply.like_count,
        "time": reply.created_at,
    }


def format_metadata(meta: PageMeta) -> dict:
    return {
        "currentPage": meta.current_page,
        "totalPages": meta.total_pages,
        "totalCount": meta.total_count,
        "pageSize": meta.page_size,
        "hasNextPage": meta.has_next_page,
        "hasPrevPage": meta.has_prev_page,
    }


def render_json(enriched: Sequence[EnrichedComment], meta: PageMeta) -> dict:
    """Build the JSON document for one page.

    A comment whose replies could not be loaded carries an empty reply list
    and ``"repliesFailed": true``.
    """
    return {
        "metadata": format_metadata(meta),
        "comments": [
            {
                "comment": format_comment(item.comment),
                "replies": [format_reply(reply) for reply in item.loaded_replies],
                "repliesFailed": item.replies_failed,
            }
            for item in enriched
        ],
    }
