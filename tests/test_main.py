"""Tests for the command-line entry point."""

import threading
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from bili_comments.adapters.web_api_adapter import WebApiAdapter
from bili_comments.core.config_manager import ConfigManager, DEFAULT_CONFIG
from bili_comments.main import app, build_service
from bili_comments.services.comment_service import CommentService

runner = CliRunner()


class TestCommands:
    @patch("bili_comments.main._run_tool", new_callable=AsyncMock, return_value="rendered page")
    def test_video_command(self, mock_run):
        result = runner.invoke(app, ["video", "--bvid", "BV17x411w7KC", "--page", "2", "--format", "json"])

        assert result.exit_code == 0
        assert "rendered page" in result.output
        args, kwargs = mock_run.call_args
        assert args == ("get_video_comments",)
        assert kwargs["bvid"] == "BV17x411w7KC"
        assert kwargs["page"] == 2
        assert kwargs["output_format"] == "json"
        assert kwargs["include_replies"] is True

    @patch("bili_comments.main._run_tool", new_callable=AsyncMock, return_value="rendered page")
    def test_dynamic_command(self, mock_run):
        result = runner.invoke(app, ["dynamic", "1234567890123", "--no-include-replies"])

        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args == ("get_dynamic_comments",)
        assert kwargs["dynamic_id"] == "1234567890123"
        assert kwargs["include_replies"] is False


class TestBuildService:
    @patch("bili_comments.main.setup_logger")
    def test_wires_config_into_adapter(self, mock_setup, tmp_dir):
        ConfigManager.reset()
        cm = ConfigManager.__new__(ConfigManager)
        cm._initialized = True
        cm._config = ConfigManager._deep_copy(DEFAULT_CONFIG)
        cm._instance_lock = threading.RLock()
        cm.CONFIG_PATH = tmp_dir / "config" / "settings.yaml"
        cm.set("retry.max_attempts", 5)
        cm.set("bilibili.key_cache_hours", 1)

        service, adapter = build_service(cm)

        mock_setup.assert_called_once_with(log_level="INFO", mask_logs=True)
        assert isinstance(service, CommentService)
        assert isinstance(adapter, WebApiAdapter)
        assert adapter._max_attempts == 5
        assert adapter.signer.key_cache._ttl == 3600
        assert service.i18n.locale == "zh_CN"
