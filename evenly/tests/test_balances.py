"""
Tests for balance, settlement and group endpoints.
"""
import pytest

from evenly.models.expense import LedgerEntry


@pytest.fixture
def dinner(client, make_user, make_group):
    """Asha paid 100 for three; returns (group_id, [user ids])."""
    users = [make_user("asha"), make_user("ben"), make_user("chen")]
    group_id = make_group(users[0], member_ids=users[1:], currency="USD")
    response = client.post(
        f"/api/expenses/group/{group_id}",
        json={
            "title": "Dinner",
            "total_amount": 100,
            "paid_by": users[0],
            "split": {"kind": "equal", "user_ids": users},
            "date": "2024-05-01",
        }
    )
    assert response.status_code == 201
    return group_id, users


def test_simplified_debts(client, dinner):
    group_id, (a, b, c) = dinner
    response = client.get(f"/api/balances/group/{group_id}/simplified-debts")

    assert response.status_code == 200
    assert response.json() == [
        {"from_user_id": b, "to_user_id": a, "amount": 33},
        {"from_user_id": c, "to_user_id": a, "amount": 33},
    ]


def test_group_summary(client, dinner):
    group_id, (a, b, c) = dinner
    data = client.get(f"/api/balances/group/{group_id}/summary").json()

    assert data["currency"] == "USD"
    assert data["total_expenses"] == 100
    assert data["total_members"] == 3
    assert data["total_owed"] == 66
    assert data["total_owing"] == 66
    assert "asha: +$0.66" in data["summary"]
    assert "ben -> asha: $0.33" in data["summary"]


def test_group_summary_counts_members_without_expenses(client, dinner, make_user):
    """A member who has not taken part in any expense still counts as a member."""
    group_id, (a, b, c) = dinner
    dana = make_user("dana")
    assert client.post(f"/api/groups/{group_id}/members", json={"user_id": dana}).status_code == 200

    data = client.get(f"/api/balances/group/{group_id}/summary").json()
    assert data["total_members"] == 4
    assert len(data["balances"]) == 3
    assert "Members: 4" in data["summary"]


def test_record_settlement_reduces_balances(client, dinner):
    """A payment from ben to asha becomes an exact-split expense."""
    group_id, (a, b, c) = dinner
    response = client.post(
        f"/api/settlements/group/{group_id}",
        json={"from_user_id": b, "to_user_id": a, "amount": 33}
    )

    assert response.status_code == 201
    assert response.json()["category"] == "settlement"
    balances = {x["user_id"]: x["amount"] for x in client.get(f"/api/balances/group/{group_id}").json()}
    assert balances == {a: 33, b: 0, c: -33}

    debts = client.get(f"/api/balances/group/{group_id}/simplified-debts").json()
    assert debts == [{"from_user_id": c, "to_user_id": a, "amount": 33}]

    summary = client.get(f"/api/balances/group/{group_id}/summary").json()
    assert summary["total_expenses"] == 100


def test_settlement_validation(client, dinner):
    group_id, (a, b, c) = dinner

    same = client.post(f"/api/settlements/group/{group_id}", json={"from_user_id": a, "to_user_id": a, "amount": 5})
    assert same.status_code == 400
    assert same.json()["field"] == "to_user_id"

    zero = client.post(f"/api/settlements/group/{group_id}", json={"from_user_id": b, "to_user_id": a, "amount": 0})
    assert zero.status_code == 400
    assert zero.json()["field"] == "total"

    fractional = client.post(f"/api/settlements/group/{group_id}", json={"from_user_id": b, "to_user_id": a, "amount": 12.5})
    assert fractional.status_code == 422


def test_user_balances_and_net(client, dinner, make_group):
    group_id, (a, b, c) = dinner
    other_group = make_group(b, member_ids=[a], name="Flat")
    client.post(
        f"/api/expenses/group/{other_group}",
        json={
            "title": "Rent",
            "total_amount": 500,
            "paid_by": b,
            "split": {"kind": "exact", "entries": [{"user_id": a, "amount": 500}]},
            "date": "2024-05-02",
        }
    )

    balances = client.get(f"/api/balances/user/{a}").json()
    assert [(x["group_id"], x["amount"]) for x in balances] == [(group_id, 66), (other_group, -500)]

    net = client.get(f"/api/balances/user/{a}/net").json()
    assert net == {"user_id": a, "total_owed": 66, "total_owing": 500, "net_balance": -434}

    assert client.get("/api/balances/user/999/net").status_code == 404


def test_consistency_and_integrity_error(client, dinner, db):
    """A corrupted ledger is reported by the audit and fails balance reads."""
    group_id, (a, b, c) = dinner
    assert client.get(f"/api/balances/group/{group_id}/consistency").json()["is_valid"] is True

    entry = db.query(LedgerEntry).filter(LedgerEntry.group_id == group_id).first()
    db.add(LedgerEntry(group_id=group_id, expense_id=entry.expense_id, user_id=b, signed_amount=7))
    db.commit()

    report = client.get(f"/api/balances/group/{group_id}/consistency").json()
    assert report["is_valid"] is False
    assert report["total_balance"] == 7

    response = client.get(f"/api/balances/group/{group_id}/simplified-debts")
    assert response.status_code == 500
    assert response.json()["error"] == "IntegrityError"


def test_unknown_group_balances(client):
    assert client.get("/api/balances/group/999").status_code == 404
    assert client.get("/api/balances/group/999/summary").status_code == 404


def test_group_details_and_membership(client, dinner, make_user):
    group_id, (a, b, c) = dinner
    data = client.get(f"/api/groups/{group_id}").json()
    assert [(m["user_id"], m["is_admin"]) for m in data["members"]] == [(a, True), (b, False), (c, False)]

    dana = make_user("dana")
    response = client.post(f"/api/groups/{group_id}/members", json={"user_id": dana})
    assert response.status_code == 200
    assert dana in [m["user_id"] for m in response.json()["members"]]
    assert client.post(f"/api/groups/{group_id}/members", json={"user_id": dana}).status_code == 409

    # Members with open balances cannot leave; settled ones can
    assert client.delete(f"/api/groups/{group_id}/members/{b}").status_code == 409
    assert client.delete(f"/api/groups/{group_id}/members/{dana}").status_code == 204


def test_duplicate_email_and_missing_users(client, make_user):
    make_user("asha")
    response = client.post("/api/users", json={"name": "Asha", "email": "asha@example.com"})
    assert response.status_code == 409

    response = client.post("/api/groups", json={"name": "Trip", "created_by": 999})
    assert response.status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
