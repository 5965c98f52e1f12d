"""Tests for AssistantBot event handling."""

import pytest

from my_assistant.constants import CONVERSATIONS, EXPENSES, UNKNOWN_USER
from tests.doubles import make_event


def _log(document_store):
    return document_store.load(CONVERSATIONS)


class TestTextMessages:
    @pytest.mark.asyncio()
    async def test_text_is_logged_and_answered(self, assistant, gateway, document_store):
        await assistant.handle_event(make_event("  你好  "))

        assert len(gateway.replies) == 1
        assert gateway.replies[0]["chat_id"] == 42
        assert "智能助手" in gateway.replies[0]["text"]

        user_entry, bot_entry = _log(document_store)
        assert user_entry["id"] == "1001"
        assert user_entry["content"] == "你好"
        assert user_entry["type"] == "text"
        assert user_entry["user"] == "Alice"
        assert user_entry["userId"] == "42"
        assert user_entry["timestamp"] == 1768458600000
        assert user_entry["time"] == "2026/1/15 下午2:30:00"

        assert bot_entry["user"] == "Bot"
        assert bot_entry["userId"] == "bot"
        assert bot_entry["type"] == "bot"
        assert bot_entry["content"] == gateway.replies[0]["text"]
        assert bot_entry["id"].startswith("bot-")

    @pytest.mark.asyncio()
    async def test_blank_text_is_ignored(self, assistant, gateway, document_store):
        await assistant.handle_event(make_event("   "))

        assert gateway.replies == []
        assert _log(document_store) == []

    @pytest.mark.asyncio()
    async def test_flow_runs_through_bot(self, assistant, gateway, document_store):
        for text in ("記帳", "午餐", "150", "1"):
            await assistant.handle_event(make_event(text))

        assert len(document_store.load(EXPENSES)) == 1
        assert gateway.replies[-1]["text"].startswith("✅ 花費已記錄")
        assert len(_log(document_store)) == 8

    @pytest.mark.asyncio()
    async def test_reply_failure_skips_bot_log(self, assistant, gateway, document_store, caplog):
        gateway.fail_reply = True
        await assistant.handle_event(make_event("hi"))

        entries = _log(document_store)
        assert len(entries) == 1
        assert entries[0]["userId"] == "42"
        assert "Failed to reply to 42" in caplog.text

    @pytest.mark.asyncio()
    async def test_display_name_failure_uses_placeholder(self, assistant, gateway, document_store):
        gateway.display_name = RuntimeError("profile unavailable")
        await assistant.handle_event(make_event("hi"))

        assert _log(document_store)[0]["user"] == UNKNOWN_USER
        assert len(gateway.replies) == 1


class TestAttachments:
    @pytest.mark.asyncio()
    async def test_image_is_saved(self, assistant, gateway, document_store, attachment_store):
        await assistant.handle_event(make_event("", message_type="image", file_id="f1"))

        files = attachment_store.list_files()
        assert [p.name for p in files] == ["20260115_Alice_1001.jpg"]
        assert files[0].read_bytes() == b"binary"

        entry = _log(document_store)[0]
        assert entry["type"] == "image"
        assert entry["filename"] == "20260115_Alice_1001.jpg"
        assert gateway.replies[0]["text"] == "✅ 已收到您的圖片: 20260115_Alice_1001.jpg"

    @pytest.mark.asyncio()
    async def test_download_failure_still_acknowledges(self, assistant, gateway, document_store, attachment_store):
        gateway.fail_content = True
        await assistant.handle_event(make_event("", message_type="audio", message_id="77"))

        assert attachment_store.list_files() == []
        assert _log(document_store)[0]["filename"] == "attachment_77"
        assert gateway.replies[0]["text"] == "✅ 已收到您的語音: attachment_77"

    @pytest.mark.asyncio()
    async def test_file_type_name(self, assistant, gateway):
        await assistant.handle_event(make_event("", message_type="file"))
        assert gateway.replies[0]["text"].startswith("✅ 已收到您的檔案")


class TestOtherEvents:
    @pytest.mark.asyncio()
    async def test_sticker_is_logged_without_reply(self, assistant, gateway, document_store):
        await assistant.handle_event(make_event("", message_type="sticker"))

        entry = _log(document_store)[0]
        assert entry["type"] == "sticker"
        assert entry["content"] == "[sticker]"
        assert gateway.replies == []

    @pytest.mark.asyncio()
    async def test_postback_is_not_logged(self, assistant, gateway, document_store, caplog):
        caplog.set_level("INFO")
        event = make_event("", kind="postback", message_type="postback", postback_data="action=menu")
        await assistant.handle_event(event)

        assert _log(document_store) == []
        assert gateway.replies == []
        assert "action=menu" in caplog.text

    @pytest.mark.asyncio()
    async def test_unknown_kind_is_ignored(self, assistant, gateway, document_store):
        await assistant.handle_event(make_event("hi", kind="follow"))

        assert _log(document_store) == []
        assert gateway.replies == []
