def profile(client, user, **fields):
    response = client.put("/api/users/profile", headers=user["headers"], json=fields)
    assert response.status_code == 200


def test_potential_matches_by_shared_skills(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    make_user("dave", private_mode=True, technical_skills=["python"])
    profile(client, alice, technical_skills=["python", "react"])
    profile(client, bob, technical_skills=["python"])
    profile(client, carol, technical_skills=["cobol"])

    response = client.get("/api/matches/potential", headers=alice["headers"])
    assert response.status_code == 200
    assert [u["username"] for u in response.json()["users"]] == ["bob"]


def test_matches_exclude_existing_connections(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    profile(client, alice, technical_skills=["python"])
    profile(client, bob, technical_skills=["python"])

    client.post("/api/connections/request", headers=alice["headers"], json={"user_id": bob["id"]})
    assert client.get("/api/matches/potential", headers=alice["headers"]).json()["count"] == 0


def test_matches_with_empty_profile(client, make_user):
    alice = make_user("alice")
    make_user("bob", technical_skills=["python"])
    assert client.get("/api/matches/potential", headers=alice["headers"]).json()["count"] == 0
    assert client.get("/api/matches/by-major", headers=alice["headers"]).json()["count"] == 0
    assert client.get("/api/matches/by-location", headers=alice["headers"]).json()["count"] == 0


def test_matches_by_major_and_location(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    profile(client, alice, major_category="Engineering", year_of_study="Junior", zip="63017")
    profile(client, bob, major_category="Engineering", year_of_study="Junior")
    profile(client, carol, major_category="Engineering", year_of_study="Senior", zip="63017")

    by_major = client.get("/api/matches/by-major", headers=alice["headers"]).json()
    assert [u["username"] for u in by_major["users"]] == ["bob"]

    by_location = client.get("/api/matches/by-location", headers=alice["headers"]).json()
    assert [u["username"] for u in by_location["users"]] == ["carol"]


def test_connected_and_pending(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    first = client.post("/api/connections/request", headers=bob["headers"], json={"user_id": alice["id"]}).json()
    client.put(f"/api/connections/accept/{first['connection_id']}", headers=alice["headers"])
    client.post("/api/connections/request", headers=carol["headers"], json={"user_id": alice["id"]})

    connected = client.get("/api/matches/connected", headers=alice["headers"]).json()
    assert [u["username"] for u in connected["users"]] == ["bob"]

    pending = client.get("/api/matches/pending", headers=alice["headers"]).json()
    assert pending["count"] == 1
    assert pending["requests"][0]["sender"]["username"] == "carol"
