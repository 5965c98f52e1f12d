"""Step handlers for the guided multi-step flows."""

import logging
import math
import re
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Tuple

from my_assistant.constants import (
    CANCEL_KEYWORD,
    EVENTS,
    EXPENSE_CATEGORIES,
    EXPENSES,
    SKIP_KEYWORD,
    THIS_MONTH_KEYWORD,
    format_amount,
    format_date,
    format_datetime,
)
from my_assistant.reports.queries import DATE_PATTERN, parse_date_range, this_month_range

from .router import CommandRouter
from .state import (
    AddEventState,
    AddEventStep,
    AddExpenseState,
    AddExpenseStep,
    ConversationState,
    ConversationStateStore,
    QueryEventsState,
    QueryExpensesState,
    QueryExpensesStep,
    SendEmailState,
)

logger = logging.getLogger(__name__)

FlowResult = Tuple[str, Optional[ConversationState]]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CATEGORY_CHOICE = re.compile(r"[1-6]")
# Trailing units such as 元 or 塊 are ignored.
LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

CANCELLED_REPLY = "❌ 操作已取消"

EVENT_DATE_PROMPT = "📅 請輸入日期\n格式: YYYY/MM/DD\n例如: 2026/01/15"
EVENT_DATE_ERROR = "❌ 日期格式錯誤,請重新輸入\n格式: YYYY/MM/DD"
EVENT_DESCRIPTION_PROMPT = "📝 請輸入行程描述或備註\n(可選,直接輸入「略過」跳過)"
EVENT_RANGE_ERROR = "❌ 格式錯誤,請重新輸入\n格式: YYYY/MM/DD - YYYY/MM/DD\n或輸入「本月」"

EXPENSE_AMOUNT_PROMPT = "💰 請輸入金額\n例如: 150"
EXPENSE_AMOUNT_ERROR = "❌ 請輸入有效的金額(數字)"
EXPENSE_CATEGORY_PROMPT = (
    "📂 請選擇類別:\n\n"
    + "\n".join(f"{i}. {name}" for i, name in enumerate(EXPENSE_CATEGORIES, start=1))
    + "\n\n請輸入數字 1-6"
)
EXPENSE_CATEGORY_ERROR = "❌ 請輸入有效的類別編號(1-6)"

QUERY_CHOICE_ERROR = "❌ 請輸入有效的選項(1-4)"
CUSTOM_RANGE_PROMPT = "請輸入查詢日期區間:\n\n格式: YYYY/MM/DD - YYYY/MM/DD\n例如: 2026/01/01 - 2026/01/31"
CUSTOM_RANGE_ERROR = "❌ 格式錯誤,請重新輸入\n格式: YYYY/MM/DD - YYYY/MM/DD\n\n或輸入「取消」取消操作"

EMAIL_ERROR = "❌ Email 格式不正確，請重新輸入\n例如: example@gmail.com\n\n或輸入「取消」取消操作"

PERIOD_CHOICES = {"1": "month", "2": "week", "3": "today"}


def parse_amount(text: str) -> Optional[float]:
    """Leading number of *text* (``150元`` -> 150.0) if positive and finite, else None."""
    match = LEADING_NUMBER.match(text.replace("$", "").replace(",", ""))
    if not match:
        return None
    amount = float(match.group(0))
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


class FlowController:
    """Interprets a text message as a command or as input to the user's active flow."""

    def __init__(self, store, reports, exporter, states: Optional[ConversationStateStore] = None, clock=None):
        self.store = store
        self.reports = reports
        self.exporter = exporter
        self.states = states if states is not None else ConversationStateStore()
        self.router = CommandRouter(reports)
        self._clock = clock or (lambda: datetime.now(reports.tz))
        self._id_lock = threading.Lock()
        self._last_id = 0
        self._handlers = {
            AddEventState: self._add_event,
            QueryEventsState: self._query_events,
            AddExpenseState: self._add_expense,
            QueryExpensesState: self._query_expenses,
            SendEmailState: self._send_email,
        }

    async def handle_text(self, user_id: str, user_name: str, message: str) -> str:
        """Advance *user_id*'s conversation by one message and persist the new state."""
        async with self.states.lock(user_id):
            current = self.states.get(user_id)
            reply, new_state = await self.advance(user_id, user_name, message, current)
            if new_state is None:
                self.states.clear(user_id)
            else:
                self.states.set(user_id, new_state)
        return reply

    async def advance(
        self,
        user_id: str,
        user_name: str,
        message: str,
        current: Optional[ConversationState],
    ) -> FlowResult:
        if message == CANCEL_KEYWORD:
            return CANCELLED_REPLY, None
        if current is None:
            return self.router.route(message)
        handler = self._handlers[type(current)]
        logger.debug("user=%s action=%s step=%s", user_id, current.action, current.step)
        return await handler(user_id, user_name, message, current)

    def _new_id(self) -> int:
        """Millisecond timestamp, bumped when two records land in the same millisecond."""
        with self._id_lock:
            candidate = int(self._clock().timestamp() * 1000)
            self._last_id = max(candidate, self._last_id + 1)
            return self._last_id

    # -- add event ---------------------------------------------------------

    async def _add_event(self, user_id, user_name, message, state: AddEventState) -> FlowResult:
        if state.step == AddEventStep.TITLE:
            return EVENT_DATE_PROMPT, replace(state, step=AddEventStep.DATE, title=message)

        if state.step == AddEventStep.DATE:
            if not DATE_PATTERN.search(message):
                return EVENT_DATE_ERROR, state
            return EVENT_DESCRIPTION_PROMPT, replace(state, step=AddEventStep.DESCRIPTION, date=message)

        description = "" if message == SKIP_KEYWORD else message
        event = {
            "id": self._new_id(),
            "user": user_name,
            "userId": user_id,
            "title": state.title,
            "date": state.date,
            "description": description,
            "createdAt": format_datetime(self._clock()),
        }
        self.store.append(EVENTS, event)
        logger.info("Event %s added for user %s", event["id"], user_id)

        reply = f"✅ 行程已新增!\n\n📌 {event['title']}\n📅 {event['date']}\n"
        if description:
            reply += f"📝 {description}\n"
        reply += "\n輸入「查詢行程」可查看所有行程"
        return reply, None

    # -- query events ------------------------------------------------------

    async def _query_events(self, user_id, user_name, message, state: QueryEventsState) -> FlowResult:
        if message == THIS_MONTH_KEYWORD:
            start_text, end_text = this_month_range(self._clock().date())
        else:
            parsed = parse_date_range(message)
            if parsed is None:
                return EVENT_RANGE_ERROR, state
            start_text, end_text = parsed
        return self.reports.query_events(start_text, end_text), None

    # -- add expense -------------------------------------------------------

    async def _add_expense(self, user_id, user_name, message, state: AddExpenseState) -> FlowResult:
        if state.step == AddExpenseStep.ITEM:
            return EXPENSE_AMOUNT_PROMPT, replace(state, step=AddExpenseStep.AMOUNT, item=message)

        if state.step == AddExpenseStep.AMOUNT:
            amount = parse_amount(message)
            if amount is None:
                return EXPENSE_AMOUNT_ERROR, state
            return EXPENSE_CATEGORY_PROMPT, replace(state, step=AddExpenseStep.CATEGORY, amount=amount)

        choice = message.strip()
        if not CATEGORY_CHOICE.fullmatch(choice):
            return EXPENSE_CATEGORY_ERROR, state
        category = EXPENSE_CATEGORIES[int(choice) - 1]

        now = self._clock()
        amount = int(state.amount) if float(state.amount).is_integer() else state.amount
        expense = {
            "id": self._new_id(),
            "user": user_name,
            "userId": user_id,
            "item": state.item,
            "amount": amount,
            "category": category,
            "date": format_date(now.date()),
            "datetime": format_datetime(now),
        }
        self.store.append(EXPENSES, expense)
        logger.info("Expense %s added for user %s", expense["id"], user_id)

        reply = (
            "✅ 花費已記錄!\n\n"
            f"📝 {expense['item']}\n"
            f"💰 NT$ {format_amount(amount)}\n"
            f"📂 {category}\n"
            f"📅 {expense['datetime']}\n"
            "\n輸入「查詢花費」可查看明細"
        )
        return reply, None

    # -- query expenses ----------------------------------------------------

    async def _query_expenses(self, user_id, user_name, message, state: QueryExpensesState) -> FlowResult:
        if state.step == QueryExpensesStep.CHOICE:
            choice = message.strip()
            if choice in PERIOD_CHOICES:
                return self.reports.expenses_for_period(PERIOD_CHOICES[choice]), None
            if choice == "4":
                return CUSTOM_RANGE_PROMPT, replace(state, step=QueryExpensesStep.CUSTOM_RANGE)
            return QUERY_CHOICE_ERROR, state

        parsed = parse_date_range(message)
        if parsed is None:
            return CUSTOM_RANGE_ERROR, state
        return self.reports.expenses_in_range(*parsed), None

    # -- send email --------------------------------------------------------

    async def _send_email(self, user_id, user_name, message, state: SendEmailState) -> FlowResult:
        recipient = message.strip()
        if not EMAIL_PATTERN.match(recipient):
            return EMAIL_ERROR, state

        # The flow ends here whatever the transport does.
        self.states.clear(user_id)
        try:
            await self.exporter.send(recipient)
        except Exception as exc:
            logger.exception("Email export to %s failed", recipient)
            return (
                f"❌ 郵件發送失敗: {exc}\n\n"
                "請確認:\n1. Email 地址正確\n2. SMTP 設定正確\n3. 網路連線正常"
            ), None
        return f"✅ 對話紀錄已成功寄送到:\n{recipient}\n\n請檢查您的信箱(包含垃圾郵件匣)", None
