import datetime as dt

from conftest import login_as, make_transaction, make_user


def test_pages_redirect_to_login_without_session(client):
    for path in ("/", "/income", "/users", "/reports", "/profile"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 307, path
        assert response.headers["location"] == "/auth/login"


def test_users_page_redirects_members_to_403(member_client):
    response = member_client.get("/users", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/403"

    forbidden = member_client.get("/403")
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"


def test_login_page_redirects_signed_in_users(member_client):
    response = member_client.get("/auth/login", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/"


def test_login_page_renders_for_guests(client):
    assert client.get("/auth/login").json() == {"page": "login"}


def test_income_page_view_model(admin_client, db, admin):
    for day in range(1, 8):
        make_transaction(db, admin, concept=f"Item {day}", amount=str(day * 10), date=dt.date(2024, 1, day))

    body = admin_client.get("/income", params={"sort": "amount", "direction": "desc", "page": 2}).json()
    assert body["page"] == "income"
    assert body["canAdd"] is True
    assert body["pagination"] == {"page": 2, "total_pages": 2, "total_items": 7, "page_size": 5}
    assert [row["amount"] for row in body["rows"]] == [20, 10]
    assert "_search" not in body["rows"][0]
    assert [c["key"] for c in body["columns"]] == ["id", "concept", "amount", "date", "user"]


def test_income_page_add_opens_income_modal(admin_client):
    body = admin_client.get("/income", params={"add": "true"}).json()
    assert body["modal"] == {"isOpen": True, "type": "income", "selected": None}


def test_income_page_members_cannot_open_modal(member_client):
    body = member_client.get("/income", params={"add": "true"}).json()
    assert body["canAdd"] is False
    assert body["modal"]["isOpen"] is False


def test_users_page_edit_selects_user(admin_client, db):
    target = make_user(db, name="Selma")
    body = admin_client.get("/users", params={"edit": target.id}).json()
    assert body["modal"]["isOpen"] is True
    assert body["modal"]["type"] == "user"
    assert body["modal"]["selected"]["name"] == "Selma"


def test_users_page_clamps_page_after_search(admin_client, db):
    for i in range(6):
        make_user(db, name=f"Zed {i}", email=f"zed{i}@example.com")
    body = admin_client.get("/users", params={"q": "zed 5", "page": 2}).json()
    assert body["pagination"]["page"] == 1
    assert [row["name"] for row in body["rows"]] == ["Zed 5"]


def test_reports_and_profile_pages(client, db):
    user = make_user(db, name="Tess")
    make_transaction(db, user, amount="-5", date=dt.date.today())
    login_as(client, db, user)

    reports = client.get("/reports").json()
    assert reports["summary"]["total_expenses"] == 5

    profile = client.get("/profile").json()
    assert profile["user"]["name"] == "Tess"
