from conftest import PASSWORD


def test_get_me_hides_credentials(client, make_user):
    user = make_user("alice")
    response = client.get("/api/users/me", headers=user["headers"])
    assert response.status_code == 200
    data = response.json()["user"]
    assert data["id"] == user["id"]
    for field in ("password", "session_id", "verification_token", "reset_password_token"):
        assert field not in data


def test_update_profile_normalizes_choice_fields(client, make_user):
    user = make_user("alice")
    response = client.put("/api/users/profile", headers=user["headers"], json={
        "bio": "  <b>Building</b> things  ",
        "gender": "Female",
        "pronoun": {"value": "Other", "custom": "Xe/Xem"},
        "year_of_study": {"value": "Junior", "custom": "ignored"},
        "technical_skills": ["python", " go ", ""],
        "unknown_field": "dropped",
    })
    assert response.status_code == 200
    data = response.json()["user"]
    assert data["bio"] == "Building things"
    assert data["gender"] == {"value": "Female", "custom": None}
    assert data["pronoun"] == {"value": "Other", "custom": "Xe/Xem"}
    assert data["year_of_study"] == {"value": "Junior", "custom": None}
    assert data["technical_skills"] == ["python", "go"]
    assert "unknown_field" not in data


def test_update_profile_rejects_bad_choice(client, make_user):
    user = make_user("alice")
    response = client.put("/api/users/profile", headers=user["headers"], json={
        "gender": "Robot",
        "co_founders_count": -1,
    })
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_PROFILE"
    assert set(body["details"]) == {"gender", "co_founders_count"}


def test_zip_autofills_city_and_state(client, make_user):
    user = make_user("alice")
    response = client.put("/api/users/profile", headers=user["headers"], json={"zip": "63017"})
    data = response.json()["user"]
    assert data["city"]["value"] == "Chesterfield"
    assert data["state"]["value"] == "MO"


def test_zip_does_not_override_explicit_city(client, make_user):
    user = make_user("alice")
    response = client.put("/api/users/profile", headers=user["headers"], json={
        "zip": "63017",
        "city": "Springfield",
    })
    data = response.json()["user"]
    assert data["city"]["value"] == "Springfield"
    assert "state" not in data


def test_unknown_zip_leaves_location_empty(client, make_user):
    user = make_user("alice")
    response = client.put("/api/users/profile", headers=user["headers"], json={"zip": "99999"})
    data = response.json()["user"]
    assert data["zip"]["value"] == "99999"
    assert "city" not in data


def test_change_password(client, make_user):
    user = make_user("alice")
    wrong = client.put("/api/users/change-password", headers=user["headers"], json={
        "current_password": "wrong-one", "new_password": "new-secret",
    })
    assert wrong.status_code == 401

    ok = client.put("/api/users/change-password", headers=user["headers"], json={
        "current_password": PASSWORD, "new_password": "new-secret",
    })
    assert ok.status_code == 200

    login = client.post("/api/auth/login", json={"email": user["doc"]["email"], "password": "new-secret"})
    assert login.status_code == 200


def test_search_users(client, make_user):
    alice = make_user("alice", full_name="Alice Smith")
    make_user("bob", full_name="Bob Smithers")
    make_user("carol", full_name="Carol Jones")

    response = client.get("/api/users/search", params={"q": "smith"}, headers=alice["headers"])
    assert response.status_code == 200
    usernames = [u["username"] for u in response.json()["users"]]
    assert usernames == ["bob"]

    short = client.get("/api/users/search", params={"q": "s"}, headers=alice["headers"])
    assert short.status_code == 400


def test_search_treats_regex_characters_literally(client, make_user):
    alice = make_user("alice")
    make_user("bob")
    response = client.get("/api/users/search", params={"q": ".*"}, headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["count"] == 0


def test_public_listing_skips_private_profiles(client, make_user):
    make_user("alice")
    make_user("bob", private_mode=True)
    response = client.get("/api/users")
    assert response.status_code == 200
    usernames = {u["username"] for u in response.json()["users"]}
    assert usernames == {"alice"}


def test_privacy_settings(client, make_user):
    user = make_user("alice")
    assert client.get("/api/users/profile/privacy-settings", headers=user["headers"]).json()["private_mode"] is False

    bad = client.post("/api/users/profile/privacy-settings", headers=user["headers"], json={"private_mode": "yes"})
    assert bad.status_code == 400

    ok = client.post("/api/users/profile/privacy-settings", headers=user["headers"], json={"private_mode": True})
    assert ok.status_code == 200
    assert client.get("/api/users/profile/privacy-settings", headers=user["headers"]).json()["private_mode"] is True


def test_get_user_by_id(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    response = client.get(f"/api/users/{bob['id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "bob"

    missing = client.get("/api/users/000000000000000000000000", headers=alice["headers"])
    assert missing.status_code == 404

    malformed = client.get("/api/users/not-an-id", headers=alice["headers"])
    assert malformed.status_code == 400
    assert malformed.json()["code"] == "INVALID_ID"


def test_avatar_upload(client, make_user):
    user = make_user("alice")
    response = client.post(
        "/api/users/avatar",
        headers=user["headers"],
        files={"file": ("me.png", b"\x89PNG fake image", "image/png")},
    )
    assert response.status_code == 200
    path = response.json()["profile_picture"]
    assert path.startswith(f"/uploads/avatar/{user['id']}/")
    assert path.endswith(".png")

    me = client.get("/api/users/me", headers=user["headers"]).json()["user"]
    assert me["profile_picture"] == path

    served = client.get(path)
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake image"


def test_avatar_rejects_non_image(client, make_user):
    user = make_user("alice")
    response = client.post(
        "/api/users/avatar",
        headers=user["headers"],
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_FILE"


def test_resume_upload_requires_pdf(client, make_user):
    user = make_user("alice")
    bad = client.post(
        "/api/users/resume",
        headers=user["headers"],
        files={"file": ("cv.docx", b"doc", "application/msword")},
    )
    assert bad.status_code == 400

    ok = client.post(
        "/api/users/resume",
        headers=user["headers"],
        files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert ok.status_code == 200
    assert ok.json()["resume"].endswith(".pdf")


def test_layout_preferences(client, make_user):
    user = make_user("alice")
    defaults = client.get("/api/users/preferences/theme", headers=user["headers"]).json()["preferences"]
    assert defaults == {
        "theme": "light",
        "rtl": False,
        "boxed": False,
        "container": False,
        "caption_show": True,
        "preset": "preset-5",
    }

    response = client.post("/api/users/preferences/theme", headers=user["headers"], json={"theme": "dark", "rtl": True})
    assert response.status_code == 200
    prefs = response.json()["preferences"]
    assert prefs["theme"] == "dark"
    assert prefs["rtl"] is True
    assert prefs["preset"] == "preset-5"
