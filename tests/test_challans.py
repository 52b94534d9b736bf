from datetime import date

import pytest

from rdms import challans, mongo_store
from tests.helpers import make_challan


TODAY = date(2024, 5, 10)


class TestModes:
    def test_mode_to_types(self):
        assert challans.mode_to_types("cash") == ("cash", "debit_note")
        assert challans.mode_to_types("job") == ("credit", "jobwork")
        assert challans.mode_to_types("unpaid") == ("credit", "debit_note")
        with pytest.raises(ValueError):
            challans.mode_to_types("barter")

    def test_types_to_mode_round_trip(self):
        for mode in challans.ENTRY_MODES:
            assert challans.types_to_mode(*challans.mode_to_types(mode)) == mode

    def test_state(self):
        assert challans.challan_state(make_challan(payment_type="cash")) == "paid"
        assert challans.challan_state(make_challan(challan_type="jobwork")) == "job"
        assert challans.challan_state(make_challan()) == "unpaid"


class TestItems:
    def test_total_is_weight_times_price(self):
        item = challans.build_item("12mm", "10.5", "3", item_id="x")
        assert item == {"id": "x", "size": "12mm", "weight": 10.5, "price": 3.0, "total": 31.5}

    def test_size_and_weight_required(self):
        with pytest.raises(ValueError, match="size and weight"):
            challans.build_item("", 1, 1)
        with pytest.raises(ValueError, match="size and weight"):
            challans.build_item("12mm", "", 1)

    def test_price_required_unless_job(self):
        with pytest.raises(ValueError, match="Price is required for '12mm'"):
            challans.build_item("12mm", 5, "")
        item = challans.build_item("12mm", 5, "", mode="job")
        assert item["price"] == 0.0
        assert item["total"] == 0.0
        assert len(item["id"]) == 32


class TestShapeChallan:
    def test_grand_total_and_mode(self):
        entry = challans.shape_challan(
            {
                "party_name": "Metro Infra",
                "entry_mode": "cash",
                "items": [{"size": "12mm", "weight": 10, "price": 5}, {"size": "16mm", "weight": 2, "price": 2.5}],
            },
            today=TODAY,
        )
        assert entry["payment_type"] == "cash"
        assert entry["challan_type"] == "debit_note"
        assert entry["grand_total"] == 55.0
        assert entry["date"] == "2024-05-10"
        assert entry["challan_no"] == ""

    def test_explicit_types_win(self):
        entry = challans.shape_challan(
            {
                "party_name": "Metro Infra",
                "entry_mode": "cash",
                "payment_type": "credit",
                "challan_type": "invoice",
                "items": [{"size": "12mm", "weight": 1, "price": 1}],
            }
        )
        assert entry["payment_type"] == "credit"
        assert entry["challan_type"] == "invoice"

    def test_party_and_items_required(self):
        with pytest.raises(ValueError, match="at least one item"):
            challans.shape_challan({"party_name": "Metro Infra", "items": []})
        with pytest.raises(ValueError, match="at least one item"):
            challans.shape_challan({"party_name": "", "items": [{"size": "12mm", "weight": 1, "price": 1}]})


class TestSummaryAndFilters:
    def setup_method(self):
        self.rows = [
            make_challan(challan_no="CH0001", date="2024-05-10", payment_type="cash", grand_total=100.0),
            make_challan(challan_no="CH0002", date="2024-05-05", grand_total=40.0),
            make_challan(challan_no="CH0003", date="2024-04-20", challan_type="jobwork", grand_total=0.0),
            make_challan(challan_no="CH0004", date="2024-03-01", party_name="Acme Construction", grand_total=10.0),
        ]

    def test_summary(self):
        assert challans.challan_summary(self.rows) == {"receivable": 50.0, "received": 100.0}

    def test_ranges(self):
        def count(rng, **kw):
            return len(challans.filter_challans(self.rows, filter_range=rng, today=TODAY, **kw))

        assert count("today") == 1
        assert count("7days") == 2
        assert count("30days") == 3
        assert count("custom", custom_date="2024-03-01") == 1

    def test_sorted_newest_first(self):
        rows = challans.filter_challans(self.rows, filter_range="30days", today=TODAY)
        assert [r["challan_no"] for r in rows] == ["CH0001", "CH0002", "CH0003"]

    def test_search_ignores_range(self):
        rows = challans.filter_challans(self.rows, filter_range="today", search="acme", today=TODAY)
        assert [r["challan_no"] for r in rows] == ["CH0004"]
        rows = challans.filter_challans(self.rows, filter_range="today", search="ch000", today=TODAY)
        assert len(rows) == 4

    def test_summary_filters(self):
        cash = challans.filter_challans(self.rows, filter_range="30days", summary_filter="cash", today=TODAY)
        assert [r["challan_no"] for r in cash] == ["CH0001"]
        unpaid = challans.filter_challans(self.rows, filter_range="30days", summary_filter="unpaid", today=TODAY)
        assert [r["challan_no"] for r in unpaid] == ["CH0002"]

    def test_unknown_range(self):
        with pytest.raises(ValueError):
            challans.filter_challans(self.rows, filter_range="year")
        with pytest.raises(ValueError):
            challans.filter_challans(self.rows, summary_filter="overdue")


class TestChallanPersistence:
    FORM = {"party_name": "Metro Infra", "entry_mode": "unpaid", "items": [{"size": "12mm", "weight": 10, "price": 5}]}

    def test_auto_numbering(self, db):
        first = challans.create_challan(dict(self.FORM))
        second = challans.create_challan(dict(self.FORM))
        manual = challans.create_challan(dict(self.FORM, challan_no=" M-77 "))
        assert first["challan_no"] == "CH0001"
        assert second["challan_no"] == "CH0002"
        assert manual["challan_no"] == "M-77"

    def test_update_keeps_number_and_delete(self, db):
        saved = challans.create_challan(dict(self.FORM))
        updated = challans.update_challan(saved["id"], dict(self.FORM, entry_mode="cash"))
        assert updated["challan_no"] == "CH0001"
        assert updated["payment_type"] == "cash"

        challans.delete_challan(saved["id"], user="Admin")
        assert mongo_store.list_documents(mongo_store.CHALLANS) == []
        last = db[mongo_store.AUDIT_LOG].find_one({"action": "delete"})
        assert last["user"] == "Admin"
        assert last["reference"] == "CH0001"


class TestUnusableInput:
    @pytest.mark.parametrize("raw", ["nan", "inf", "1e400"])
    def test_non_finite_weight_and_price(self, raw):
        item = challans.build_item("12mm", raw, raw)
        assert item["weight"] == 0.0
        assert item["price"] == 0.0
        assert item["total"] == 0.0

    def test_grand_total_stays_finite(self):
        entry = challans.shape_challan(
            {"party_name": "Metro Infra", "items": [{"size": "12mm", "weight": "inf", "price": 5}, {"size": "16mm", "weight": 2, "price": 3}]}
        )
        assert entry["grand_total"] == 6.0

    def test_bad_date_rejected(self):
        with pytest.raises(ValueError, match="Date must be YYYY-MM-DD"):
            challans.shape_challan({"party_name": "Metro Infra", "date": "10/05/2024", "items": [{"size": "12mm", "weight": 1, "price": 1}]})
