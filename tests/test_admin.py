import csv
import io

from conftest import PASSWORD, run


def test_admin_routes_require_admin(client, make_user):
    member = make_user("member")
    assert client.get("/api/admin/dashboard-stats", headers=member["headers"]).status_code == 403
    assert client.get("/api/admin/dashboard-stats").status_code == 401


def test_dashboard_stats(client, make_user):
    admin = make_user("root", user_type="admin")
    make_user("alice")
    make_user("bob", verification_status="inactive")

    stats = client.get("/api/admin/dashboard-stats", headers=admin["headers"]).json()["stats"]
    assert stats == {"total_users": 3, "active_users": 2, "pending_users": 1, "admin_users": 1}


def test_list_users_hides_credentials(client, make_user):
    admin = make_user("root", user_type="admin")
    make_user("alice")
    users = client.get("/api/admin/users", headers=admin["headers"]).json()["users"]
    assert len(users) == 2
    assert all("password" not in user for user in users)


def test_export_users_csv(client, make_user):
    admin = make_user("root", user_type="admin")
    make_user("alice", technical_skills=["python", "go"], gender={"value": "Female", "custom": None})

    response = client.get("/api/admin/export-users", headers=admin["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    rows = list(csv.DictReader(io.StringIO(response.text)))
    alice = next(row for row in rows if row["username"] == "alice")
    assert alice["technical_skills"] == "python, go"
    assert alice["gender"] == "Female"
    assert alice["email_verified"] == "Yes"


def test_create_admin(client, make_user, db):
    admin = make_user("root", user_type="admin")
    response = client.post("/api/admin/create-admin", headers=admin["headers"], json={
        "full_name": "Second Admin",
        "username": "second",
        "email": "second@mail.com",
        "password": "admin-pass",
    })
    assert response.status_code == 201
    stored = run(db.users.find_one({"username": "second"}))
    assert stored["user_type"] == "admin"
    assert stored["verification_status"] == "active"

    login = client.post("/api/auth/admin-login", json={"username": "second", "password": "admin-pass"})
    assert login.status_code == 200


def test_delete_user_cascades(client, make_user, db):
    admin = make_user("root", user_type="admin")
    alice = make_user("alice")
    bob = make_user("bob")
    client.post("/api/connections/request", headers=alice["headers"], json={"user_id": bob["id"]})
    client.post("/api/preferences/theme", headers=alice["headers"], json={"theme": "dark"})

    response = client.delete(f"/api/admin/users/{alice['id']}", headers=admin["headers"])
    assert response.status_code == 200
    assert run(db.users.find_one({"_id": alice["doc"]["_id"]})) is None
    assert run(db.connections.count_documents({})) == 0
    assert run(db.notifications.count_documents({})) == 0
    assert run(db.user_preferences.count_documents({})) == 0

    again = client.delete(f"/api/admin/users/{alice['id']}", headers=admin["headers"])
    assert again.status_code == 404


def test_admin_cannot_delete_self_or_primary_admin(client, make_user):
    primary = make_user("root", user_type="admin")
    second = make_user("second", user_type="admin")

    own = client.delete(f"/api/admin/users/{second['id']}", headers=second["headers"])
    assert own.status_code == 400

    response = client.delete(f"/api/admin/users/{primary['id']}", headers=second["headers"])
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot delete the primary admin account"

    assert client.delete(f"/api/admin/users/{second['id']}", headers=primary["headers"]).status_code == 200


def test_admin_change_password(client, make_user):
    admin = make_user("root", user_type="admin")
    response = client.post("/api/admin/change-password", headers=admin["headers"], json={
        "current_password": PASSWORD, "new_password": "fresh-pass",
    })
    assert response.status_code == 200
    login = client.post("/api/auth/admin-login", json={"username": "root", "password": "fresh-pass"})
    assert login.status_code == 200
