"""Keyword routing for messages that are not part of an active flow."""

import logging
from typing import Callable, List, Optional, Tuple

from .state import (
    AddEventState,
    AddExpenseState,
    ConversationState,
    QueryEventsState,
    QueryExpensesState,
    SendEmailState,
)

logger = logging.getLogger(__name__)

RouteResult = Tuple[str, Optional[ConversationState]]

ADD_EVENT_PROMPT = "📅 請輸入行程標題:"
QUERY_EVENTS_PROMPT = (
    "請輸入查詢日期區間:\n\n"
    "格式: YYYY/MM/DD - YYYY/MM/DD\n"
    "例如: 2026/01/01 - 2026/01/31\n\n"
    "或直接輸入「本月」查詢本月行程"
)
ADD_EXPENSE_PROMPT = "💰 請輸入消費項目\n例如: 午餐"
QUERY_EXPENSES_PROMPT = (
    "請選擇查詢方式:\n\n"
    "1. 本月花費\n"
    "2. 本週花費\n"
    "3. 今日花費\n"
    "4. 自訂日期區間\n\n"
    "請輸入數字 1-4"
)
SEND_EMAIL_PROMPT = "📧 請輸入收件者 Email:\n例如: example@gmail.com"

HELP_TEXT = (
    "📋 功能選單\n\n"
    "📅 行程管理:\n"
    "• 新增行程 - 記錄重大行程\n"
    "• 查詢行程 - 查詢特定日期區間\n"
    "• 所有行程 - 查看所有行程\n\n"
    "💰 花費管理:\n"
    "• 記帳 - 記錄花費\n"
    "• 查詢花費 - 查詢花費明細\n"
    "• 花費統計 - 查看分類統計\n\n"
    "📧 其他功能:\n"
    "• 轉寄對話 - 寄送對話紀錄\n"
    "• 取消 - 取消目前操作\n"
    "• 功能 - 顯示此選單"
)

GREETING_REPLY = "您好!我是您的智能助手 😊\n\n輸入「功能」查看可用功能"
THANKS_REPLY = "不客氣!很高興能幫助您 😊\n有其他需要隨時告訴我"
HOURS_REPLY = "我是 24/7 全天候為您服務的智能助手!\n隨時都可以使用記帳、行程管理等功能 😊"
DEFAULT_REPLY = (
    "我收到您的訊息了!\n\n"
    "如需使用功能,請輸入:\n"
    "• 「功能」- 查看功能選單\n"
    "• 「記帳」- 記錄花費\n"
    "• 「新增行程」- 記錄行程\n"
    "• 「轉寄對話」- 匯出紀錄"
)

HELP_COMMANDS = {"help", "?", "/start", "/help", "/menu"}


def _contains(*phrases: str) -> Callable[[str], bool]:
    return lambda message: any(phrase in message for phrase in phrases)


def auto_reply(message: str) -> str:
    """Canned reply for small talk, falling back to the command summary."""
    lower = message.lower()
    if "你好" in lower or "哈囉" in lower or lower in ("hi", "hello"):
        return GREETING_REPLY
    if "謝謝" in lower or "感謝" in lower:
        return THANKS_REPLY
    if "營業時間" in lower or "服務時間" in lower:
        return HOURS_REPLY
    return DEFAULT_REPLY


class CommandRouter:
    """Ordered (predicate, handler) table; the first matching predicate wins.

    Trigger phrases overlap (``轉寄對話`` contains ``轉寄``, a message can
    mention two commands), so the order below is part of the behaviour.
    """

    def __init__(self, reports):
        self.reports = reports
        self.routes: List[Tuple[Callable[[str], bool], Callable[[str], RouteResult]]] = [
            (_contains("新增行程", "記錄行程"), self._start_add_event),
            (_contains("查詢行程"), self._start_query_events),
            (_contains("所有行程"), self._all_events),
            (_contains("記帳", "記錄花費"), self._start_add_expense),
            (_contains("查詢花費", "花費查詢"), self._start_query_expenses),
            (_contains("花費統計"), self._expense_stats),
            (_contains("轉寄對話", "轉寄"), self._start_send_email),
            (self._is_help, self._help),
        ]

    def route(self, message: str) -> RouteResult:
        for predicate, handler in self.routes:
            if predicate(message):
                logger.debug("Routed %r to %s", message, handler.__name__)
                return handler(message)
        return auto_reply(message), None

    @staticmethod
    def _is_help(message: str) -> bool:
        return "功能" in message or "幫助" in message or message.lower() in HELP_COMMANDS

    def _start_add_event(self, message: str) -> RouteResult:
        return ADD_EVENT_PROMPT, AddEventState()

    def _start_query_events(self, message: str) -> RouteResult:
        return QUERY_EVENTS_PROMPT, QueryEventsState()

    def _all_events(self, message: str) -> RouteResult:
        return self.reports.all_events(), None

    def _start_add_expense(self, message: str) -> RouteResult:
        return ADD_EXPENSE_PROMPT, AddExpenseState()

    def _start_query_expenses(self, message: str) -> RouteResult:
        return QUERY_EXPENSES_PROMPT, QueryExpensesState()

    def _expense_stats(self, message: str) -> RouteResult:
        return self.reports.expense_stats("month"), None

    def _start_send_email(self, message: str) -> RouteResult:
        return SEND_EMAIL_PROMPT, SendEmailState()

    def _help(self, message: str) -> RouteResult:
        return HELP_TEXT, None
