"""HTML export of the conversation log, events and expenses."""

import asyncio
import logging
from datetime import datetime
from html import escape
from typing import Dict, List, Optional, Tuple

from my_assistant.constants import (
    CONVERSATIONS,
    EVENTS,
    EXPENSES,
    file_type_name,
    format_amount,
    format_datetime,
    format_short_date,
)

logger = logging.getLogger(__name__)

TABLE_OPEN = (
    '<table border="1" cellpadding="8" '
    'style="border-collapse: collapse; width: 100%; font-family: Arial, sans-serif;">'
)
CHART_FILENAME = "category_breakdown.png"


def _header_row(color: str, *titles: str) -> str:
    cells = "".join(f"<th>{title}</th>" for title in titles)
    return f'<tr style="background-color: {color}; color: white;">{cells}</tr>'


def _row(index: int, *values) -> str:
    background = "#f9f9f9" if index % 2 == 0 else "white"
    cells = "".join(f"<td>{escape(str(value))}</td>" for value in values)
    return f'<tr style="background-color: {background};">{cells}</tr>'


def _conversation_content(entry: Dict) -> str:
    if entry.get("type", "text") in ("text", "bot"):
        return entry.get("content", "")
    if entry.get("filename"):
        return f"[{file_type_name(entry['type'])}] {entry['filename']}"
    return entry.get("content", "")


def build_report(
    conversations: List[Dict],
    events: List[Dict],
    expenses: List[Dict],
    exported_at: str,
) -> str:
    """Render the tri-section report; event and expense tables only when non-empty."""
    parts = ['<html><head><meta charset="UTF-8"></head><body>']
    parts.append("<h2>📱 對話紀錄</h2>")
    parts.append(f"<p><strong>匯出時間:</strong> {escape(exported_at)}</p>")
    parts.append("<hr>")

    parts.append("<h3>💬 對話內容</h3>")
    parts.append(TABLE_OPEN)
    parts.append(_header_row("#4CAF50", "時間", "用戶", "類型", "內容"))
    for index, entry in enumerate(conversations):
        parts.append(_row(
            index,
            entry.get("time", ""),
            entry.get("user", ""),
            entry.get("type", ""),
            _conversation_content(entry),
        ))
    parts.append("</table>")

    if events:
        parts.append("<br><h3>📅 行程紀錄</h3>")
        parts.append(TABLE_OPEN)
        parts.append(_header_row("#2196F3", "標題", "日期", "描述", "建立時間"))
        for index, event in enumerate(events):
            parts.append(_row(
                index,
                event.get("title", ""),
                event.get("date", ""),
                event.get("description") or "-",
                event.get("createdAt", ""),
            ))
        parts.append("</table>")

    if expenses:
        parts.append("<br><h3>💰 花費紀錄</h3>")
        parts.append(TABLE_OPEN)
        parts.append(_header_row("#FF9800", "項目", "金額", "類別", "日期時間"))
        total = 0.0
        for index, expense in enumerate(expenses):
            amount = float(expense.get("amount", 0))
            total += amount
            parts.append(_row(
                index,
                expense.get("item", ""),
                f"NT$ {format_amount(amount)}",
                expense.get("category", ""),
                expense.get("datetime", ""),
            ))
        parts.append(
            '<tr style="background-color: #ffffcc; font-weight: bold;">'
            '<td colspan="3" style="text-align: right;">總計</td>'
            f"<td>NT$ {format_amount(total)}</td></tr>"
        )
        parts.append("</table>")

    parts.append("</body></html>")
    return "\n".join(parts)


class EmailExporter:
    """Builds the report with attachments and hands it to the mailer."""

    def __init__(self, store, attachments, mailer, reports, viz=None, clock=None):
        self.store = store
        self.attachments = attachments
        self.mailer = mailer
        self.reports = reports
        self.viz = viz
        self._clock = clock or (lambda: datetime.now(reports.tz))

    def _chart_attachment(self) -> Optional[Tuple[str, bytes]]:
        if self.viz is None:
            return None
        breakdown = self.reports.category_breakdown("month")
        try:
            chart = self.viz.pie_chart(breakdown, "本月花費分類")
        except Exception as exc:
            logger.error("Chart generation failed: %s", exc)
            return None
        if chart is None:
            return None
        return CHART_FILENAME, chart.getvalue()

    def prepare(self) -> Tuple[str, str, List[Tuple[str, bytes]]]:
        now = self._clock()
        html = build_report(
            self.store.load(CONVERSATIONS),
            self.store.load(EVENTS),
            self.store.load(EXPENSES),
            format_datetime(now),
        )
        files = [(path.name, path.read_bytes()) for path in self.attachments.list_files()]
        chart = self._chart_attachment()
        if chart:
            files.append(chart)
        subject = f"對話紀錄匯出 - {format_short_date(now.date())}"
        return subject, html, files

    def send_sync(self, recipient: str) -> None:
        subject, html, files = self.prepare()
        self.mailer.send(recipient, subject, html, files)

    async def send(self, recipient: str) -> None:
        await asyncio.to_thread(self.send_sync, recipient)
