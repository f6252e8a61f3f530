"""bili-comments command-line entry point."""

import asyncio
import logging
from typing import Optional

import typer
from typing_extensions import Annotated

from bili_comments.adapters.web_api_adapter import WebApiAdapter
from bili_comments.core.config_manager import ConfigManager
from bili_comments.core.credentials import SESSDATA_ENV
from bili_comments.core.i18n_manager import I18nManager
from bili_comments.core.logger import setup_logger
from bili_comments.services.comment_service import CommentService

app = typer.Typer(help="Fetch Bilibili video and dynamic comments, including nested replies.")

logger = logging.getLogger("bili_comments")


def build_service(config: ConfigManager) -> tuple[CommentService, WebApiAdapter]:
    """Startup sequence:
    1. Logger (reads log_level and mask_logs from config)
    2. I18nManager (reads locale from config)
    3. Adapter creation (timeouts, retry policy, key cache window)
    4. Service creation (inject adapter)
    """
    setup_logger(
        log_level=config.get("app.log_level", "INFO"),
        mask_logs=config.get("security.mask_logs", True),
    )

    i18n = I18nManager()
    i18n.load_locale(config.get("app.locale", "zh_CN"))

    adapter = WebApiAdapter(
        timeout_sec=config.get("bilibili.timeout_sec", 15),
        page_timeout_sec=config.get("bilibili.page_timeout_sec", 10),
        reply_timeout_sec=config.get("bilibili.reply_timeout_sec", 10),
        max_attempts=config.get("retry.max_attempts", 3),
        retry_delay_ms=config.get("retry.delay_ms", 1000),
        key_cache_ttl_sec=config.get("bilibili.key_cache_hours", 12) * 3600,
    )
    return CommentService(adapter, i18n=i18n), adapter


async def _run_tool(tool: str, **kwargs) -> str:
    service, adapter = build_service(ConfigManager())
    logger.info(f"Running {tool}")
    async with adapter:
        return await getattr(service, tool)(**kwargs)


@app.command()
def video(
    bvid: Annotated[Optional[str], typer.Option(help="Video BV id (either this or --aid)")] = None,
    aid: Annotated[Optional[str], typer.Option(help="Video AV number (either this or --bvid)")] = None,
    page: Annotated[int, typer.Option(help="Page number")] = 1,
    page_size: Annotated[int, typer.Option(help="Comments per page, 1-20")] = 20,
    sort: Annotated[int, typer.Option(help="0 by time, 1 by popularity")] = 0,
    include_replies: Annotated[bool, typer.Option(help="Fetch nested replies")] = True,
    output_format: Annotated[str, typer.Option("--format", help="markdown or json")] = "markdown",
    cookie: Annotated[Optional[str], typer.Option(help=f"Cookie string; defaults to {SESSDATA_ENV}")] = None,
) -> None:
    """Get comments of a video."""
    typer.echo(asyncio.run(_run_tool(
        "get_video_comments",
        bvid=bvid,
        aid=aid,
        page=page,
        page_size=page_size,
        sort=sort,
        include_replies=include_replies,
        output_format=output_format,
        cookie=cookie,
    )))


@app.command()
def dynamic(
    dynamic_id: Annotated[str, typer.Argument(help="Dynamic id")],
    page: Annotated[int, typer.Option(help="Page number")] = 1,
    page_size: Annotated[int, typer.Option(help="Comments per page, 1-20")] = 20,
    include_replies: Annotated[bool, typer.Option(help="Fetch nested replies")] = True,
    output_format: Annotated[str, typer.Option("--format", help="markdown or json")] = "markdown",
    cookie: Annotated[Optional[str], typer.Option(help=f"Cookie string; defaults to {SESSDATA_ENV}")] = None,
) -> None:
    """Get comments of a dynamic (feed post)."""
    typer.echo(asyncio.run(_run_tool(
        "get_dynamic_comments",
        dynamic_id=dynamic_id,
        page=page,
        page_size=page_size,
        include_replies=include_replies,
        output_format=output_format,
        cookie=cookie,
    )))


def main():
    app()


if __name__ == "__main__":
    main()
