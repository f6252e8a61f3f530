"""Shared test fixtures for bili-comments tests."""

import json
import shutil
import tempfile
from pathlib import Path

import pytest
import yaml

from bili_comments.core.config_manager import ConfigManager, DEFAULT_CONFIG
from bili_comments.core.i18n_manager import I18nManager


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset all singletons after each test."""
    yield
    ConfigManager.reset()
    I18nManager.reset()


@pytest.fixture(autouse=True)
def no_env_cookie(monkeypatch):
    """Tests never pick up a real SESSDATA from the environment."""
    monkeypatch.delenv("BILIBILI_SESSDATA", raising=False)


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def config_file(tmp_dir):
    """Create a temporary settings.yaml and return its path."""
    config_dir = tmp_dir / "config"
    config_dir.mkdir(parents=True)
    config_path = config_dir / "settings.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(dict(DEFAULT_CONFIG), f, default_flow_style=False, sort_keys=False)

    return config_path


@pytest.fixture
def locale_dir(tmp_dir):
    """Create temporary locale directory with test JSON files."""
    loc_dir = tmp_dir / "locales"
    loc_dir.mkdir(parents=True)

    zh_data = {
        "markdown": {"last_page": "已到达最后一页。"},
        "errors": {"video_failed": "获取评论失败: {message}"},
    }
    en_data = {
        "markdown": {"last_page": "This is the last page."},
        "errors": {"video_failed": "Failed to fetch comments: {message}"},
    }

    with open(loc_dir / "zh_CN.json", "w", encoding="utf-8") as f:
        json.dump(zh_data, f, ensure_ascii=False)
    with open(loc_dir / "en_US.json", "w", encoding="utf-8") as f:
        json.dump(en_data, f, ensure_ascii=False)

    return loc_dir


@pytest.fixture
def zh_i18n():
    """I18nManager loaded with the packaged zh_CN strings."""
    i18n = I18nManager()
    i18n.load_locale("zh_CN")
    return i18n


# --- Helpers: raw payloads as the web API returns them ---

def make_raw_comment(rpid=1, uname="user", message="hello", like=0, ctime=1700000000,
                     rcount=0, level=3, sex="保密", location="IP属地：广东"):
    raw = {
        "rpid": rpid,
        "member": {"uname": uname, "sex": sex, "level_info": {"current_level": level}},
        "content": {"message": message},
        "like": like,
        "ctime": ctime,
        "rcount": rcount,
    }
    if location is not None:
        raw["reply_control"] = {"location": location}
    return raw


def make_page_data(replies=None, hots=None, num=1, count=None, size=20):
    replies = replies or []
    data = {
        "page": {"num": num, "count": len(replies) if count is None else count, "size": size},
        "replies": replies,
    }
    if hots is not None:
        data["hots"] = hots
    return data


def make_envelope(data=None, code=0, message="0"):
    return {"code": code, "message": message, "data": data}
