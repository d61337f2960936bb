import datetime as dt

from finboard.models import User

from conftest import login_as, make_user


def test_list_users_requires_session(client):
    response = client.get("/api/users")
    assert response.status_code == 401
    assert response.json() == {"error": "unauthorized"}


def test_list_users_forbidden_for_members(member_client):
    response = member_client.get("/api/users")
    assert response.status_code == 403
    assert response.json() == {"error": "forbidden"}


def test_list_users_newest_first(admin_client, db, admin):
    make_user(db, name="Older", created_at=dt.datetime(2020, 1, 1, tzinfo=dt.timezone.utc))
    make_user(db, name="Newer", created_at=dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc))

    response = admin_client.get("/api/users")
    assert response.status_code == 200
    items = response.json()["items"]
    assert [u["name"] for u in items] == ["Newer", "Root", "Older"]
    assert set(items[0]) == {"id", "name", "email", "tel", "role", "createdAt"}


def test_list_users_with_table_params(admin_client, db):
    for i in range(7):
        make_user(db, name=f"Member {i}", email=f"m{i}@example.com")

    response = admin_client.get("/api/users", params={"q": "member", "sort": "name", "direction": "desc", "page": 2})
    body = response.json()
    assert response.status_code == 200
    assert body["total_items"] == 7
    assert body["total_pages"] == 2
    assert body["page"] == 2
    assert [u["name"] for u in body["items"]] == ["Member 1", "Member 0"]


def test_list_users_page_is_clamped(admin_client):
    body = admin_client.get("/api/users", params={"page": 40}).json()
    assert body["page"] == 1
    assert len(body["items"]) == 1


def test_list_users_rejects_unsortable_column(admin_client):
    response = admin_client.get("/api/users", params={"sort": "password_hash"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_body"


def test_create_user(admin_client, db):
    response = admin_client.post("/api/users", json={"name": "Nina", "role": "user", "email": "Nina@Example.com"})
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Nina"
    assert body["email"] == "nina@example.com"
    assert body["role"] == "user"
    assert db.get(User, body["id"]) is not None


def test_create_user_invalid_body(admin_client):
    response = admin_client.post("/api/users", json={"name": "N", "role": "owner"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "invalid_body"
    assert set(body["details"]["fieldErrors"]) == {"name", "role"}


def test_create_user_duplicate_email(admin_client, member):
    response = admin_client.post("/api/users", json={"name": "Bobby", "role": "user", "email": "bob@example.com"})
    assert response.status_code == 409
    assert response.json() == {"error": "conflict"}


def test_create_user_rejects_malformed_email(admin_client, db):
    response = admin_client.post("/api/users", json={"name": "Zed", "role": "user", "email": "zed@example..com"})
    assert response.status_code == 400
    assert set(response.json()["details"]["fieldErrors"]) == {"email"}
    assert db.query(User).filter_by(name="Zed").count() == 0


def test_create_user_concurrent_duplicate_is_conflict(admin_client, member, monkeypatch):
    # Another request inserted the same email after the existence check
    monkeypatch.setattr("finboard.routers.users._email_taken", lambda db, email: False)
    response = admin_client.post("/api/users", json={"name": "Bobby", "role": "user", "email": "bob@example.com"})
    assert response.status_code == 409
    assert response.json() == {"error": "conflict"}


def test_patch_user_changes_role(admin_client, db, member):
    response = admin_client.patch(f"/api/users/{member.id}", json={"name": "Robert", "role": "admin"})
    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    db.expire_all()
    assert db.get(User, member.id).name == "Robert"


def test_role_change_applies_on_next_request(client, db, admin, member):
    login_as(client, db, member)
    assert client.get("/api/users").status_code == 403

    member.role = "admin"
    db.commit()
    assert client.get("/api/users").status_code == 200


def test_patch_user_validates_body(admin_client, member):
    response = admin_client.patch(f"/api/users/{member.id}", json={"name": "Robert"})
    assert response.status_code == 400
    assert "role" in response.json()["details"]["fieldErrors"]


def test_patch_unknown_user(admin_client):
    response = admin_client.patch("/api/users/nope", json={"name": "Robert", "role": "user"})
    assert response.status_code == 404
    assert response.json() == {"error": "not_found"}


def test_delete_user(admin_client, db, member):
    member_id = member.id
    response = admin_client.delete(f"/api/users/{member_id}")
    assert response.status_code == 204
    db.expire_all()
    assert db.get(User, member_id) is None


def test_auth_is_checked_before_body(member_client):
    response = member_client.post("/api/users", json={})
    assert response.status_code == 403


def test_method_not_allowed(admin_client, member):
    response = admin_client.put(f"/api/users/{member.id}", json={"name": "Robert", "role": "user"})
    assert response.status_code == 405
    assert response.json() == {"error": "method_not_allowed"}
