from datetime import date

import pytest

from rdms import analytics
from tests.helpers import make_entry


TODAY = date(2024, 5, 10)


class TestFilters:
    """Dashboard filter combinations."""

    def setup_method(self):
        self.entries = [
            make_entry(timestamp=4),
            make_entry(date="2024-05-08", party_name="Metro Infra", size="12mm", weight=3.0, bundle=1, status="pending", timestamp=3),
            make_entry(date="2024-05-01", size="25x25", weight=7.0, timestamp=2),
            make_entry(date="2024-04-20", party_name="Metro Infra", weight=20.0, status="running", timestamp=1),
        ]

    def test_no_filters(self):
        assert len(analytics.filter_dispatch(self.entries)) == 4

    def test_party_size_status(self):
        assert len(analytics.filter_dispatch(self.entries, {"party": "Metro Infra"})) == 2
        assert len(analytics.filter_dispatch(self.entries, {"size": "20x20"})) == 2
        assert len(analytics.filter_dispatch(self.entries, {"status": "pending"})) == 1
        assert len(analytics.filter_dispatch(self.entries, {"status": "all"})) == 4

    def test_date_range_inclusive(self):
        rows = analytics.filter_dispatch(self.entries, {"start_date": "2024-05-01", "end_date": "2024-05-08"})
        assert [r["timestamp"] for r in rows] == [3, 2]

    def test_selected_date_overrides(self):
        rows = analytics.filter_dispatch(self.entries, {"selected_date": "2024-04-20", "party": "Acme Construction"})
        assert [r["timestamp"] for r in rows] == [1]

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            analytics.filter_dispatch(self.entries, {"status": "lost"})

    def test_sort(self):
        assert [r["timestamp"] for r in analytics.sort_entries(self.entries, "weight", "asc")] == [3, 2, 4, 1]
        with pytest.raises(ValueError):
            analytics.sort_entries(self.entries, "colour")

    def test_totals(self):
        totals = analytics.dispatch_totals(self.entries)
        assert totals == {"weight": 40.0, "bundles": 7, "pcs": 20.0, "count": 4}

    def test_options(self):
        assert analytics.unique_parties(self.entries) == ["Acme Construction", "Metro Infra"]
        assert analytics.unique_sizes(self.entries) == ["12mm", "20x20", "25x25"]


class TestCharts:
    def test_last_7_days(self):
        data = analytics.last_7_days([make_entry(), make_entry(date="2024-05-04", weight=2.0), make_entry(date="2024-05-03")], TODAY)
        assert len(data) == 7
        assert data[0] == {"date": "05/04", "weight": 2.0}
        assert data[-1] == {"date": "05/10", "weight": 10.0}

    def test_calendar_month(self):
        cal = analytics.calendar_month([make_entry(), make_entry()], 2024, 5)
        assert cal["leading_blanks"] == 3
        assert len(cal["days"]) == 31
        assert cal["days"][9] == {"date": "2024-05-10", "day": 10, "count": 2}
        with pytest.raises(ValueError):
            analytics.calendar_month([], 2024, 13)

    def test_top_parties_and_sizes(self):
        entries = [
            make_entry(weight=5.0),
            make_entry(party_name="Metro Infra", size="12mm", weight=8.0),
            make_entry(party_name="Global Steel Co", weight=1.0),
        ]
        assert analytics.top_parties(entries, n=2) == [
            {"name": "Metro Infra", "weight": 8.0},
            {"name": "Acme Construction", "weight": 5.0},
        ]
        assert analytics.size_distribution(entries) == [
            {"name": "12mm", "value": 8.0},
            {"name": "20x20", "value": 6.0},
        ]

    def test_date_trend_keeps_last_days_ascending(self):
        entries = [make_entry(date=f"2024-05-{d:02d}", weight=float(d)) for d in range(1, 11)]
        trend = analytics.date_trend(entries)
        assert [t["date"] for t in trend] == [f"2024-05-{d:02d}" for d in range(4, 11)]


class TestViews:
    def test_analytics_view(self):
        view = analytics.analytics_view([make_entry(), make_entry(party_name="Metro Infra", size="12mm", weight=30.0, bundle=1)])
        assert view["empty"] is False
        assert view["summary"] == {
            "total_weight": 40.0,
            "total_bundles": 3,
            "top_party": "Metro Infra",
            "top_size": "12mm",
        }

    def test_analytics_view_empty(self):
        view = analytics.analytics_view([])
        assert view["empty"] is True
        assert view["summary"]["top_party"] == ""

    def test_dashboard_stats_ignores_selected_date(self):
        entries = [make_entry(), make_entry(date="2024-05-09", party_name="Metro Infra")]
        view = analytics.dashboard_view(entries, {"selected_date": "2024-05-09"}, today=TODAY)
        assert view["view_mode"] == "stats"
        assert view["totals"]["count"] == 2
        assert len(view["groups"]) == 2
        assert "calendar" not in view

    def test_dashboard_calendar(self):
        entries = [make_entry(), make_entry(date="2024-05-09", party_name="Metro Infra")]
        view = analytics.dashboard_view(entries, {"selected_date": "2024-05-09"}, view_mode="calendar", today=TODAY)
        assert view["selected_date"] == "2024-05-09"
        assert view["totals"]["count"] == 2
        assert [g["party_name"] for g in view["groups"]] == ["Metro Infra"]
        assert view["calendar"]["month"] == 5
