"""Read-only views over the events and expenses collections.

Everything at module level is a pure function of its arguments; the
``ReportEngine`` facade loads the collections from a document store and
supplies "today" in the configured timezone.
"""

import calendar
import math
import re
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from my_assistant.constants import EVENTS, EXPENSES, format_amount, format_date

DATE_TOKEN = r"\d{4}[/-]\d{1,2}[/-]\d{1,2}"
DATE_PATTERN = re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})")
RANGE_PATTERN = re.compile(rf"({DATE_TOKEN})\s*-\s*({DATE_TOKEN})")

PERIOD_LABELS = {
    "today": "今日",
    "week": "本週",
    "month": "本月",
}

SEPARATOR = "───────────────"


def parse_date(text: str) -> Optional[date]:
    """First ``YYYY/M/D`` (or ``YYYY-M-D``) token in *text* as a date, or None."""
    if not text:
        return None
    match = DATE_PATTERN.search(str(text))
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_range(text: str) -> Optional[Tuple[str, str]]:
    """``start - end`` tokens as typed, or None when absent or not real dates."""
    match = RANGE_PATTERN.search(text or "")
    if not match:
        return None
    start_text, end_text = match.group(1), match.group(2)
    if parse_date(start_text) is None or parse_date(end_text) is None:
        return None
    return start_text, end_text


def month_bounds(today: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def week_bounds(today: date) -> Tuple[date, date]:
    """Calendar week starting on Sunday."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def period_range(period: str, today: date) -> Tuple[date, date, str]:
    if period == "today":
        start = end = today
    elif period == "week":
        start, end = week_bounds(today)
    elif period == "month":
        start, end = month_bounds(today)
    else:
        raise ValueError(f"Unknown period: {period}")
    return start, end, PERIOD_LABELS[period]


def this_month_range(today: date) -> Tuple[str, str]:
    start, end = month_bounds(today)
    return format_date(start), format_date(end)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

def filter_events(events: List[Dict], start: date, end: date) -> List[Dict]:
    """Events dated within [start, end], oldest first."""
    dated = []
    for event in events:
        event_date = parse_date(event.get("date", ""))
        if event_date is not None and start <= event_date <= end:
            dated.append((event_date, event))
    dated.sort(key=lambda pair: pair[0])
    return [event for _, event in dated]


def _render_events(events: List[Dict]) -> str:
    lines = []
    for index, event in enumerate(events, start=1):
        lines.append(f"{index}. {event.get('title', '')}")
        lines.append(f"   📅 {event.get('date', '')}")
        if event.get("description"):
            lines.append(f"   📝 {event['description']}")
        lines.append("")
    return "\n".join(lines).strip()


def render_event_query(events: List[Dict], start_text: str, end_text: str) -> str:
    start, end = parse_date(start_text), parse_date(end_text)
    matched = filter_events(events, start, end) if start and end else []
    header = f"📅 查詢期間: {start_text} ~ {end_text}"
    if not matched:
        return f"{header}\n\n目前沒有行程紀錄"
    return f"{header}\n\n共 {len(matched)} 個行程:\n\n{_render_events(matched)}"


def render_all_events(events: List[Dict]) -> str:
    """Every event, newest first; undated events go last."""
    if not events:
        return "📅 目前沒有行程紀錄"
    dated = [e for e in events if parse_date(e.get("date", "")) is not None]
    undated = [e for e in events if parse_date(e.get("date", "")) is None]
    dated.sort(key=lambda e: parse_date(e["date"]), reverse=True)
    ordered = dated + undated
    return f"📅 所有行程 (共 {len(ordered)} 個):\n\n{_render_events(ordered)}"


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

def filter_expenses(expenses: List[Dict], start: date, end: date) -> List[Dict]:
    """Expenses whose ``date`` falls within [start, end], in stored order."""
    result = []
    for expense in expenses:
        expense_date = parse_date(expense.get("date", ""))
        if expense_date is not None and start <= expense_date <= end:
            result.append(expense)
    return result


def render_expense_listing(expenses: List[Dict], label: str) -> str:
    if not expenses:
        return f"💰 {label}花費查詢\n\n目前沒有花費紀錄"

    total = 0.0
    message = f"💰 {label}花費明細\n\n"
    for index, expense in enumerate(expenses, start=1):
        amount = float(expense.get("amount", 0))
        message += f"{index}. {expense.get('item', '')}\n"
        message += f"   💵 NT$ {format_amount(amount)}\n"
        message += f"   📂 {expense.get('category', '')}\n"
        message += f"   📅 {expense.get('datetime', '')}\n\n"
        total += amount

    message += f"{SEPARATOR}\n"
    message += f"📊 共 {len(expenses)} 筆\n"
    message += f"💰 總計: NT$ {format_amount(total)}"
    return message


def category_totals(expenses: List[Dict]) -> List[Tuple[str, float]]:
    """Per-category sums, largest first."""
    totals: Dict[str, float] = defaultdict(float)
    for expense in expenses:
        totals[expense.get("category", "其他")] += float(expense.get("amount", 0))
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def category_percentages(expenses: List[Dict]) -> List[Tuple[str, float, float]]:
    """``(category, amount, percent_of_total)`` rows, largest first."""
    rows = category_totals(expenses)
    total = sum(amount for _, amount in rows)
    if total <= 0:
        return [(category, amount, 0.0) for category, amount in rows]
    return [(category, amount, amount / total * 100) for category, amount in rows]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def render_expense_stats(expenses: List[Dict], label: str) -> str:
    if not expenses:
        return f"📊 {label}花費統計\n\n目前沒有花費紀錄"

    rows = category_percentages(expenses)
    total = sum(amount for _, amount, _ in rows)

    message = f"📊 {label}花費統計\n\n"
    for category, amount, percentage in rows:
        message += f"{category}: NT$ {format_amount(amount)} ({percentage:.1f}%)\n"

    message += f"\n{SEPARATOR}\n"
    message += f"💰 總計: NT$ {format_amount(total)}\n"
    message += f"📝 筆數: {len(expenses)} 筆\n"
    message += f"📈 平均: NT$ {format_amount(_round_half_up(total / len(expenses)))}"
    return message


class ReportEngine:
    """Loads collections from *store* and renders the views above."""

    def __init__(self, store, tz=None, clock=None):
        self.store = store
        self.tz = tz
        self._clock = clock

    def today(self) -> date:
        now = self._clock() if self._clock else datetime.now(self.tz)
        return now.date()

    def query_events(self, start_text: str, end_text: str) -> str:
        return render_event_query(self.store.load(EVENTS), start_text, end_text)

    def all_events(self) -> str:
        return render_all_events(self.store.load(EVENTS))

    def expenses_for_period(self, period: str) -> str:
        start, end, label = period_range(period, self.today())
        matched = filter_expenses(self.store.load(EXPENSES), start, end)
        return render_expense_listing(matched, label)

    def expenses_in_range(self, start_text: str, end_text: str) -> str:
        start, end = parse_date(start_text), parse_date(end_text)
        matched = filter_expenses(self.store.load(EXPENSES), start, end)
        return render_expense_listing(matched, f"{start_text} ~ {end_text} ")

    def expense_stats(self, period: str = "month") -> str:
        start, end, label = period_range(period, self.today())
        matched = filter_expenses(self.store.load(EXPENSES), start, end)
        return render_expense_stats(matched, label)

    def category_breakdown(self, period: str = "month") -> Dict[str, float]:
        start, end, _ = period_range(period, self.today())
        matched = filter_expenses(self.store.load(EXPENSES), start, end)
        return dict(category_totals(matched))
