"""Shared constants and helpers for My Assistant."""

from datetime import date, datetime
from typing import Dict, List

CANCEL_KEYWORD = "取消"
SKIP_KEYWORD = "略過"
THIS_MONTH_KEYWORD = "本月"

BOT_USER_NAME = "Bot"
BOT_USER_ID = "bot"
UNKNOWN_USER = "Unknown User"

# Order matters: menu numbers 1-6 index into this list.
EXPENSE_CATEGORIES: List[str] = [
    "飲食",
    "交通",
    "娛樂",
    "購物",
    "生活",
    "其他",
]

CONVERSATIONS = "conversations"
EVENTS = "events"
EXPENSES = "expenses"
COLLECTIONS = (CONVERSATIONS, EVENTS, EXPENSES)

ATTACHMENT_TYPES = ("image", "video", "audio", "file")

FILE_EXTENSIONS: Dict[str, str] = {
    "image": "jpg",
    "video": "mp4",
    "audio": "m4a",
    "file": "file",
}

FILE_TYPE_NAMES: Dict[str, str] = {
    "image": "圖片",
    "video": "影片",
    "audio": "語音",
    "file": "檔案",
}


def file_extension(file_type: str) -> str:
    return FILE_EXTENSIONS.get(file_type, "dat")


def file_type_name(file_type: str) -> str:
    return FILE_TYPE_NAMES.get(file_type, "附件")


def format_date(value: date) -> str:
    """Canonical zero-padded ``YYYY/MM/DD``."""
    return f"{value.year:04d}/{value.month:02d}/{value.day:02d}"


def format_datetime(value: datetime) -> str:
    """zh-TW style timestamp, e.g. ``2026/1/15 下午3:04:05``."""
    meridiem = "上午" if value.hour < 12 else "下午"
    hour = value.hour % 12 or 12
    return (
        f"{value.year}/{value.month}/{value.day} "
        f"{meridiem}{hour}:{value.minute:02d}:{value.second:02d}"
    )


def format_short_date(value: date) -> str:
    return f"{value.year}/{value.month}/{value.day}"


def format_amount(amount: float) -> str:
    """Thousands-separated amount without trailing zero decimals (``1,234.5``)."""
    text = f"{amount:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
