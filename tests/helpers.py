ADMIN = {"x-user-role": "admin", "x-user-name": "Admin"}
OPERATOR = {"x-user-role": "user", "x-user-name": "User"}


def make_entry(**overrides):
    entry = {
        "date": "2024-05-10",
        "party_name": "Acme Construction",
        "size": "20x20",
        "weight": 10.0,
        "pcs": 5.0,
        "bundle": 2,
        "status": "completed",
        "timestamp": 1000,
    }
    entry.update(overrides)
    return entry


def make_challan(**overrides):
    challan = {
        "challan_no": "CH0001",
        "date": "2024-05-10",
        "party_name": "Metro Infra",
        "payment_type": "credit",
        "challan_type": "debit_note",
        "items": [{"id": "a1", "size": "12mm", "weight": 10.0, "price": 5.0, "total": 50.0}],
        "grand_total": 50.0,
        "timestamp": 1000,
    }
    challan.update(overrides)
    return challan
