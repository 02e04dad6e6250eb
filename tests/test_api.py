import os

from bson import ObjectId


STORE_FORM = {
    "name": "Coffee Shop",
    "description": "Good coffee",
    "tags": ["wifi", "vegan"],
    "address": "1 Main St",
    "lng": "-73.98",
    "lat": "40.75",
}


def test_root(client):
    assert client.get("/").json() == {"message": "Store Directory API running"}


def test_register_with_photo(client, upload_dir, image_bytes):
    resp = client.post(
        "/auth/register",
        data={"name": "Jane", "email": "jane@example.com", "password": "pw", "password_confirm": "pw"},
        files={"photo": ("me.png", image_bytes(), "image/png")},
    )
    assert resp.status_code == 200, resp.text
    user = resp.json()["user"]
    assert "password_hash" not in user
    assert os.path.exists(os.path.join(upload_dir, user["photo"]))


def test_register_validation_errors(client):
    resp = client.post(
        "/auth/register",
        data={"name": "Jane", "email": "jane@example.com", "password": "one", "password_confirm": "two"},
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["detail"] == ["Oops! Your passwords do not match."]
    assert body["body"] == {"name": "Jane", "email": "jane@example.com"}


def test_login(client, register):
    register()
    ok = client.post("/auth/login", json={"email": "jane@example.com", "password": "secret"})
    assert ok.status_code == 200
    assert ok.json()["user"]["name"] == "Jane Doe"
    bad = client.post("/auth/login", json={"email": "jane@example.com", "password": "nope"})
    assert bad.status_code == 401


def test_account_requires_token(client):
    assert client.get("/account").status_code == 401


def test_account_update_keeps_photo(client, db, register, image_bytes):
    headers, user = register()
    first = client.post(
        "/account",
        data={"name": "Jane", "email": "jane@example.com"},
        files={"photo": ("me.png", image_bytes(), "image/png")},
        headers=headers,
    )
    photo = first.json()["user"]["photo"]
    assert photo

    resp = client.post("/account", data={"name": "Janet", "email": "janet@example.com"}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Successfully updated your account."
    assert body["user"]["name"] == "Janet"
    assert body["user"]["photo"] == photo
    assert client.get("/account", headers=headers).json()["email"] == "janet@example.com"


def test_account_update_rejects_text_upload(client, db, register, upload_dir):
    headers, user = register()
    resp = client.post(
        "/account",
        data={"name": "Changed", "email": "jane@example.com"},
        files={"photo": ("notes.txt", b"just text", "text/plain")},
        headers=headers,
    )
    assert resp.status_code == 415
    assert resp.json() == {"message": "That filetype isn't allowed!"}
    assert db["user"].find_one({"_id": ObjectId(user["id"])})["name"] == "Jane Doe"
    assert not upload_dir.exists()


def test_account_update_bad_email(client, register):
    headers, _ = register()
    resp = client.post("/account", data={"name": "Jane", "email": "broken"}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["detail"] == ["Invalid Email Address"]


def test_store_lifecycle(client, register):
    headers, _ = register()
    first = client.post("/api/stores", data=STORE_FORM, headers=headers)
    assert first.status_code == 200, first.text
    store = first.json()["store"]
    assert store["slug"] == "coffee-shop"
    assert store["tags"] == ["wifi", "vegan"]
    assert store["location"]["coordinates"] == [-73.98, 40.75]

    second = client.post("/api/stores", data=STORE_FORM, headers=headers).json()["store"]
    assert second["slug"] == "coffee-shop-1"

    edited = client.put(f"/api/stores/{second['id']}", data={**STORE_FORM, "description": "Better"}, headers=headers)
    assert edited.json()["store"]["slug"] == "coffee-shop-1"

    found = client.get("/api/stores/coffee-shop")
    assert found.status_code == 200
    assert found.json()["reviews"] == []
    assert client.get("/api/stores/nowhere").status_code == 404

    listing = client.get("/api/stores").json()
    assert listing["count"] == 2
    assert listing["pages"] == 1


def test_store_edit_by_other_user(client, register):
    owner_headers, _ = register()
    other_headers, _ = register(name="Bob", email="bob@example.com")
    store = client.post("/api/stores", data=STORE_FORM, headers=owner_headers).json()["store"]
    resp = client.put(f"/api/stores/{store['id']}", data=STORE_FORM, headers=other_headers)
    assert resp.status_code == 403
    assert resp.json() == {"detail": "You must own a store in order to edit it!"}


def test_store_invalid_id(client, register):
    headers, _ = register()
    assert client.put("/api/stores/not-an-id", data=STORE_FORM, headers=headers).status_code == 400


def test_tags_reviews_and_top(client, register):
    headers, _ = register()
    store = client.post("/api/stores", data=STORE_FORM, headers=headers).json()["store"]
    client.post("/api/stores", data={**STORE_FORM, "tags": ["wifi"]}, headers=headers)

    client.post("/api/stores", data={**STORE_FORM, "name": "Plain", "tags": []}, headers=headers)
    listing = client.get("/api/tags").json()
    assert listing["tags"] == [
        {"tag": "wifi", "count": 2},
        {"tag": "vegan", "count": 1},
    ]
    assert sorted(s["slug"] for s in listing["stores"]) == ["coffee-shop", "coffee-shop-1"]
    by_tag = client.get("/api/tags/vegan").json()
    assert [s["id"] for s in by_tag["stores"]] == [store["id"]]

    for rating in (4, 5):
        resp = client.post(f"/api/reviews/{store['id']}", json={"text": "Nice", "rating": rating}, headers=headers)
        assert resp.status_code == 200
    top = client.get("/api/top").json()
    assert [(s["slug"], s["averageRating"]) for s in top] == [("coffee-shop", 4.5)]

    missing = client.post(f"/api/reviews/{ObjectId()}", json={"text": "Nice", "rating": 4}, headers=headers)
    assert missing.status_code == 404


def test_hearts(client, register):
    headers, _ = register()
    store = client.post("/api/stores", data=STORE_FORM, headers=headers).json()["store"]
    on = client.post(f"/api/stores/{store['id']}/heart", headers=headers).json()
    assert on == {"hearted": True, "hearts": [store["id"]]}
    assert [s["id"] for s in client.get("/api/hearts", headers=headers).json()] == [store["id"]]
    off = client.post(f"/api/stores/{store['id']}/heart", headers=headers).json()
    assert off == {"hearted": False, "hearts": []}
