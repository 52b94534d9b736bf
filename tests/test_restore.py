import json

from bson import ObjectId

from rdms import backup, mongo_store, restore
from tests.helpers import make_challan, make_entry


class TestRestore:
    def test_round_trip_through_backup(self, db):
        entry_id = mongo_store.add_document(mongo_store.DISPATCH, make_entry())
        mongo_store.add_document(mongo_store.CHALLANS, make_challan())
        data, filename = backup.build_backup()
        assert filename.startswith("rdms_cloud_backup_")

        payload = json.loads(backup.dump_backup(data))
        payload["dispatch"][0]["weight"] = 99.0
        counts = restore.restore_backup(payload)

        assert counts == {"dispatch": 1, "challan": 1}
        assert db[mongo_store.DISPATCH].count_documents({}) == 1
        assert db[mongo_store.DISPATCH].find_one({"_id": ObjectId(entry_id)})["weight"] == 99.0

    def test_rows_without_ids_are_inserted(self, db):
        counts = restore.restore_backup({"dispatch": [make_entry(), make_entry(id="legacy-1")], "challan": make_challan()})
        assert counts == {"dispatch": 2, "challan": 1}
        assert db[mongo_store.DISPATCH].find_one({"_id": "legacy-1"}) is not None

    def test_read_backup(self, tmp_path):
        path = tmp_path / "rdms_cloud_backup_2024-05-10.json"
        path.write_text(json.dumps({"dispatch": [], "challan": []}), encoding="utf-8")
        assert restore.read_backup(path) == {"dispatch": [], "challan": []}

    def test_to_list(self):
        assert restore.to_list(None) == []
        assert restore.to_list([{"a": 1}, "junk"]) == [{"a": 1}]
