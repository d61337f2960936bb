import datetime as dt

from finboard.models import Transaction

from conftest import login_as, make_transaction, make_user


def test_list_income_requires_session(client):
    assert client.get("/api/income").status_code == 401


def test_member_sees_only_own_rows(member_client, db, admin, member):
    make_transaction(db, member, concept="Mine", date=dt.date(2024, 1, 1))
    make_transaction(db, admin, concept="Theirs")

    response = member_client.get("/api/income")
    assert response.status_code == 200
    items = response.json()["items"]
    assert [i["concept"] for i in items] == ["Mine"]
    assert items[0]["user"] == {"id": member.id, "name": "Bob", "email": "bob@example.com"}


def test_member_cannot_read_other_user_rows(member_client, db, admin):
    make_transaction(db, admin, concept="Theirs")
    response = member_client.get("/api/income", params={"userId": admin.id})
    assert response.json()["items"] == []


def test_admin_can_read_other_user_rows(admin_client, db, member):
    make_transaction(db, member, concept="Bob's", amount="-12.50")
    items = admin_client.get("/api/income", params={"userId": member.id}).json()["items"]
    assert [(i["concept"], i["amount"]) for i in items] == [("Bob's", -12.5)]


def test_list_income_newest_first_and_searchable(admin_client, db, admin):
    make_transaction(db, admin, concept="Rent", amount="-800", date=dt.date(2024, 2, 1))
    make_transaction(db, admin, concept="Salary", amount="2500", date=dt.date(2024, 2, 28))
    make_transaction(db, admin, concept="Groceries", amount="-60", date=dt.date(2024, 2, 10))

    items = admin_client.get("/api/income").json()["items"]
    assert [i["concept"] for i in items] == ["Salary", "Groceries", "Rent"]

    items = admin_client.get("/api/income", params={"q": "SAL"}).json()["items"]
    assert [i["concept"] for i in items] == ["Salary"]

    items = admin_client.get("/api/income", params={"sort": "amount"}).json()["items"]
    assert [i["amount"] for i in items] == [-800, -60, 2500]


def test_create_income(admin_client, db, admin):
    response = admin_client.post("/api/income/create", json={"concept": "  Bonus ", "amount": "150.25", "date": "2024-05-01"})
    assert response.status_code == 201
    body = response.json()
    assert body["concept"] == "Bonus"
    assert body["amount"] == 150.25
    assert body["date"] == "2024-05-01"
    assert body["user"]["id"] == admin.id
    assert db.get(Transaction, body["id"]) is not None


def test_create_income_accepts_iso_timestamp(admin_client):
    response = admin_client.post("/api/income/create", json={"concept": "Fee", "amount": -3, "date": "2024-05-01T23:30:00-02:00"})
    assert response.status_code == 201
    assert response.json()["date"] == "2024-05-02"


def test_create_income_forbidden_for_members(member_client):
    response = member_client.post("/api/income/create", json={"concept": "x", "amount": 1, "date": "2024-01-01"})
    assert response.status_code == 403


def test_create_income_invalid_body(admin_client):
    response = admin_client.post("/api/income/create", json={"concept": "", "amount": "abc", "date": "not a date"})
    assert response.status_code == 400
    details = response.json()["details"]
    assert set(details["fieldErrors"]) == {"concept", "amount", "date"}


def test_create_income_rejects_zero_amount(admin_client):
    response = admin_client.post("/api/income/create", json={"concept": "Nothing", "amount": 0, "date": "2024-01-01"})
    assert response.status_code == 400


def test_create_income_rejects_sub_cent_amount(admin_client, db):
    response = admin_client.post("/api/income/create", json={"concept": "Tiny", "amount": "0.001", "date": "2024-01-01"})
    assert response.status_code == 400
    assert set(response.json()["details"]["fieldErrors"]) == {"amount"}
    assert db.query(Transaction).count() == 0


def test_create_income_rejects_oversized_amount(admin_client, db):
    response = admin_client.post(
        "/api/income/create", json={"concept": "Huge", "amount": "10000000000000000", "date": "2024-01-01"}
    )
    assert response.status_code == 400
    assert set(response.json()["details"]["fieldErrors"]) == {"amount"}


def test_create_income_accepts_largest_amount(admin_client):
    response = admin_client.post(
        "/api/income/create", json={"concept": "Big", "amount": "9999999999999999.99", "date": "2024-01-01"}
    )
    assert response.status_code == 201


def test_update_income_rejects_sub_cent_amount(admin_client, db, admin):
    tx = make_transaction(db, admin, concept="Coffee", amount="-3.50")
    response = admin_client.patch(f"/api/income/{tx.id}", json={"amount": "-0.004"})
    assert response.status_code == 400


def test_wrong_method_on_create(admin_client):
    assert admin_client.get("/api/income/create").status_code == 405
    assert admin_client.post("/api/income", json={}).status_code == 405


def test_update_and_delete_income(admin_client, db, admin):
    tx = make_transaction(db, admin, concept="Typo")
    tx_id = tx.id

    response = admin_client.patch(f"/api/income/{tx_id}", json={"concept": "Fixed", "amount": "-9"})
    assert response.status_code == 200
    assert (response.json()["concept"], response.json()["amount"]) == ("Fixed", -9)

    assert admin_client.delete(f"/api/income/{tx_id}").status_code == 204
    db.expire_all()
    assert db.get(Transaction, tx_id) is None
    assert admin_client.delete(f"/api/income/{tx_id}").status_code == 404


def test_update_income_forbidden_for_members(member_client, db, member):
    tx = make_transaction(db, member)
    assert member_client.patch(f"/api/income/{tx.id}", json={"concept": "Mine"}).status_code == 403


def test_reports_summary_and_export(client, db):
    user = make_user(db, name="Rita")
    make_transaction(db, user, concept="Pay", amount="300", date=dt.date.today())
    make_transaction(db, user, concept="Food", amount="-40", date=dt.date.today())
    make_transaction(db, user, concept="Later", amount="999", date=dt.date.today() + dt.timedelta(days=3))
    login_as(client, db, user)

    summary = client.get("/api/reports/summary", params={"days": 7}).json()
    assert summary["total_income"] == 300
    assert summary["total_expenses"] == 40
    assert summary["balance"] == 260
    assert len(summary["series"]) == 7
    assert summary["series"][-1]["balance"] == 260

    response = client.get("/api/reports/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "attachment" in response.headers["content-disposition"]
