"""Tests for I18nManager."""

import json

from bili_comments.core.i18n_manager import I18nManager, LOCALE_DIR


def _manager(locale_dir):
    mgr = I18nManager()
    mgr._locale_dir = locale_dir
    return mgr


class TestI18nManagerInit:
    """Test singleton behavior."""

    def test_singleton_returns_same_instance(self):
        a = I18nManager()
        b = I18nManager()
        assert a is b

    def test_reset_allows_new_instance(self):
        a = I18nManager()
        I18nManager.reset()
        b = I18nManager()
        assert a is not b


class TestI18nManagerLoadLocale:
    """Test locale loading."""

    def test_load_valid_locale(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.locale == "en_US"
        assert mgr.get("markdown.last_page") == "This is the last page."

    def test_load_missing_locale_keeps_current(self, locale_dir):
        """Loading non-existent locale should not crash, keeps current data."""
        mgr = _manager(locale_dir)
        mgr.load_locale("zh_CN")
        mgr.load_locale("ko_KR")
        assert mgr.locale == "zh_CN"
        assert mgr.get("markdown.last_page") == "已到达最后一页。"

    def test_load_invalid_json_keeps_current(self, locale_dir):
        (locale_dir / "bad.json").write_text("{{{invalid", encoding="utf-8")
        mgr = _manager(locale_dir)
        mgr.load_locale("zh_CN")
        mgr.load_locale("bad")
        assert mgr.locale == "zh_CN"

    def test_ensure_loaded_does_not_reload(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.ensure_loaded() is mgr
        assert mgr.locale == "en_US"

    def test_packaged_locales_share_keys(self):
        def keys(node, prefix=""):
            if isinstance(node, dict):
                return {k for name, child in node.items() for k in keys(child, f"{prefix}{name}.")}
            return {prefix.rstrip(".")}

        with open(LOCALE_DIR / "zh_CN.json", encoding="utf-8") as f:
            zh = json.load(f)
        with open(LOCALE_DIR / "en_US.json", encoding="utf-8") as f:
            en = json.load(f)
        assert keys(zh) == keys(en)


class TestI18nManagerGet:
    """Test key resolution and formatting."""

    def test_get_with_placeholder(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("zh_CN")
        assert mgr.get("errors.video_failed", message="超时") == "获取评论失败: 超时"

    def test_get_missing_key_returns_key(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("zh_CN")
        assert mgr.get("nonexistent.key") == "nonexistent.key"

    def test_get_with_missing_placeholder_returns_template(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("zh_CN")
        assert "{message}" in mgr.get("errors.video_failed", wrong_key="x")

    def test_get_non_string_node_returns_key(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("zh_CN")
        assert mgr.get("markdown") == "markdown"

    def test_message_with_braces_is_not_reformatted(self, locale_dir):
        mgr = _manager(locale_dir)
        mgr.load_locale("en_US")
        result = mgr.get("errors.video_failed", message="bad {json}")
        assert result == "Failed to fetch comments: bad {json}"
