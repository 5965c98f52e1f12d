"""Tests for the pure query and rendering helpers plus ReportEngine."""

from datetime import date

import pytest

from my_assistant.constants import EVENTS, EXPENSES
from my_assistant.reports.queries import (
    category_percentages,
    category_totals,
    filter_events,
    filter_expenses,
    month_bounds,
    parse_date,
    parse_date_range,
    period_range,
    render_all_events,
    render_event_query,
    render_expense_listing,
    render_expense_stats,
    this_month_range,
    week_bounds,
)


class TestParsing:
    @pytest.mark.parametrize("text, expected", [
        ("2026/01/15", date(2026, 1, 15)),
        ("2026-1-5", date(2026, 1, 5)),
        ("due 2026/3/9 at noon", date(2026, 3, 9)),
    ])
    def test_parse_date(self, text, expected):
        assert parse_date(text) == expected

    @pytest.mark.parametrize("text", ["", None, "tomorrow", "2026/13/01", "2026/02/30"])
    def test_parse_date_invalid(self, text):
        assert parse_date(text) is None

    def test_parse_range(self):
        assert parse_date_range("2026/01/01 - 2026/01/31") == ("2026/01/01", "2026/01/31")
        assert parse_date_range("2026-1-1-2026-1-31") == ("2026-1-1", "2026-1-31")

    @pytest.mark.parametrize("text", ["2026/01/01", "2026/01/01 ~ 2026/01/31", "2026/13/01 - 2026/13/31"])
    def test_parse_range_invalid(self, text):
        assert parse_date_range(text) is None


class TestPeriods:
    def test_month_bounds(self):
        assert month_bounds(date(2026, 2, 10)) == (date(2026, 2, 1), date(2026, 2, 28))
        assert month_bounds(date(2028, 2, 10)) == (date(2028, 2, 1), date(2028, 2, 29))

    def test_week_starts_on_sunday(self):
        # 2026/01/15 is a Thursday
        assert week_bounds(date(2026, 1, 15)) == (date(2026, 1, 11), date(2026, 1, 17))

    def test_week_on_sunday_is_same_day(self):
        assert week_bounds(date(2026, 1, 11))[0] == date(2026, 1, 11)

    def test_week_on_saturday(self):
        assert week_bounds(date(2026, 1, 17)) == (date(2026, 1, 11), date(2026, 1, 17))

    def test_period_range_today(self):
        today = date(2026, 1, 15)
        assert period_range("today", today) == (today, today, "今日")

    def test_period_range_unknown(self):
        with pytest.raises(ValueError):
            period_range("year", date(2026, 1, 15))

    def test_this_month_range_is_zero_padded(self):
        assert this_month_range(date(2026, 1, 15)) == ("2026/01/01", "2026/01/31")


class TestEvents:
    SAMPLE = [
        {"title": "B", "date": "2026/01/31"},
        {"title": "A", "date": "2026/1/1"},
        {"title": "Outside", "date": "2026/02/01"},
        {"title": "Undated", "date": "someday"},
    ]

    def test_filter_is_inclusive_and_sorted(self):
        result = filter_events(self.SAMPLE, date(2026, 1, 1), date(2026, 1, 31))
        assert [e["title"] for e in result] == ["A", "B"]

    def test_filter_compares_dates_not_strings(self):
        # "2026/1/5" sorts after "2026/01/31" lexically
        events = [{"title": "X", "date": "2026/1/5"}]
        assert filter_events(events, date(2026, 1, 1), date(2026, 1, 31)) == events

    def test_render_event_query_empty(self):
        reply = render_event_query([], "2026/01/01", "2026/01/31")
        assert reply == "📅 查詢期間: 2026/01/01 ~ 2026/01/31\n\n目前沒有行程紀錄"

    def test_render_event_query_includes_description(self):
        events = [{"title": "Meeting", "date": "2026/01/15", "description": "Room 3"}]
        reply = render_event_query(events, "2026/01/01", "2026/01/31")
        assert "共 1 個行程" in reply
        assert "1. Meeting\n   📅 2026/01/15\n   📝 Room 3" in reply

    def test_render_all_events_newest_first_undated_last(self):
        reply = render_all_events(self.SAMPLE)
        order = [reply.index(title) for title in ("Outside", "B", "A", "Undated")]
        assert order == sorted(order)

    def test_render_all_events_empty(self):
        assert render_all_events([]) == "📅 目前沒有行程紀錄"


class TestExpenses:
    SAMPLE = [
        {"item": "Lunch", "amount": 100, "category": "飲食", "date": "2026/01/15", "datetime": "2026/1/15 下午12:00:00"},
        {"item": "Taxi", "amount": 250.5, "category": "交通", "date": "2026/01/10", "datetime": "2026/1/10 上午9:00:00"},
        {"item": "Movie", "amount": 300, "category": "娛樂", "date": "2026/01/01", "datetime": "2026/1/1 下午8:00:00"},
        {"item": "Dinner", "amount": 200, "category": "飲食", "date": "2025/12/31", "datetime": "2025/12/31 下午7:00:00"},
    ]

    def test_filter_keeps_stored_order(self):
        result = filter_expenses(self.SAMPLE, date(2026, 1, 1), date(2026, 1, 31))
        assert [e["item"] for e in result] == ["Lunch", "Taxi", "Movie"]

    def test_listing_totals(self):
        reply = render_expense_listing(self.SAMPLE[:3], "本月")
        assert reply.startswith("💰 本月花費明細")
        assert "📊 共 3 筆" in reply
        assert reply.endswith("💰 總計: NT$ 650.5")

    def test_listing_empty(self):
        assert render_expense_listing([], "今日") == "💰 今日花費查詢\n\n目前沒有花費紀錄"

    def test_category_totals_largest_first(self):
        assert category_totals(self.SAMPLE) == [("飲食", 300.0), ("娛樂", 300.0), ("交通", 250.5)]

    def test_percentages_sum_to_100(self):
        rows = category_percentages(self.SAMPLE)
        assert sum(pct for _, _, pct in rows) == pytest.approx(100.0)

    def test_percentages_with_zero_total(self):
        rows = category_percentages([{"amount": 0, "category": "其他"}])
        assert rows == [("其他", 0.0, 0.0)]

    def test_stats(self):
        expenses = [
            {"amount": 100, "category": "飲食"},
            {"amount": 50, "category": "交通"},
            {"amount": 51, "category": "飲食"},
        ]
        reply = render_expense_stats(expenses, "本月")
        assert "飲食: NT$ 151 (75.1%)" in reply
        assert "交通: NT$ 50 (24.9%)" in reply
        assert "💰 總計: NT$ 201" in reply
        assert "📝 筆數: 3 筆" in reply
        assert reply.endswith("📈 平均: NT$ 67")

    def test_stats_average_rounds_half_up(self):
        expenses = [{"amount": 1, "category": "其他"}, {"amount": 2, "category": "其他"}]
        assert render_expense_stats(expenses, "本月").endswith("📈 平均: NT$ 2")

    def test_stats_empty(self):
        assert render_expense_stats([], "本月") == "📊 本月花費統計\n\n目前沒有花費紀錄"


class TestReportEngine:
    def test_today_uses_clock(self, reports):
        assert reports.today() == date(2026, 1, 15)

    def test_query_events(self, reports, document_store):
        document_store.save(EVENTS, [{"title": "Meeting", "date": "2026/01/15"}])
        assert "Meeting" in reports.query_events("2026/01/15", "2026/01/15")

    def test_expenses_in_range_label(self, reports, document_store):
        document_store.save(EXPENSES, TestExpenses.SAMPLE)
        reply = reports.expenses_in_range("2025/12/01", "2025/12/31")
        assert reply.startswith("💰 2025/12/01 ~ 2025/12/31 花費明細")
        assert "Dinner" in reply

    def test_category_breakdown(self, reports, document_store):
        document_store.save(EXPENSES, TestExpenses.SAMPLE)
        assert reports.category_breakdown("month") == {"飲食": 100.0, "交通": 250.5, "娛樂": 300.0}
