from bson import ObjectId

from conftest import FakeStorage, auth_headers, make_account, make_profile
from main import app
from storage import get_storage


def test_admin_routes_need_admin_role(client, db):
    pid = make_profile(approved=False)
    assert client.post("/api/admin/approve", json={"id": pid}).status_code == 401
    model = make_account("MODEL")
    assert client.post("/api/admin/approve", json={"id": pid}, headers=auth_headers(model, "MODEL")).status_code == 403


def test_role_comes_from_the_database(client, db):
    # token claims ADMIN, stored account is a brand
    brand = make_account("BRAND")
    pid = make_profile(approved=False)
    res = client.post("/api/admin/approve", json={"id": pid}, headers=auth_headers(brand, "ADMIN"))
    assert res.status_code == 403


def test_approve_sets_both_flags(client, db, admin_headers):
    pid = make_profile(approved=False, available=False)
    res = client.post("/api/admin/approve", json={"id": pid}, headers=admin_headers)
    assert res.status_code == 200
    profile = db["talentprofile"].find_one({"_id": ObjectId(pid)})
    assert profile["approved"] is True
    assert profile["available"] is True


def test_approve_unknown_profile(client, db, admin_headers):
    assert client.post("/api/admin/approve", json={"id": str(ObjectId())}, headers=admin_headers).status_code == 404
    assert client.post("/api/admin/approve", json={"id": "garbage"}, headers=admin_headers).status_code == 404


def test_reject_removes_account_profile_and_photos(client, db, admin_headers, storage):
    pid = make_profile(approved=False, photos=3)
    user_id = db["talentprofile"].find_one({"_id": ObjectId(pid)})["user_id"]

    res = client.post("/api/admin/reject", json={"id": pid, "reason": "Blurry photos"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["rejectedModel"]["reason"] == "Blurry photos"
    assert db["talentprofile"].count_documents({"_id": ObjectId(pid)}) == 0
    assert db["user"].count_documents({"_id": ObjectId(user_id)}) == 0
    assert db["photo"].count_documents({"profile_id": pid}) == 0
    assert len(storage.deleted) == 3


def test_toggle_availability_twice_is_identity(client, db, admin_headers):
    pid = make_profile(available=True)
    first = client.post("/api/admin/toggle-availability", json={"modelId": pid}, headers=admin_headers)
    assert first.json()["model"]["available"] is False
    second = client.post("/api/admin/toggle-availability", json={"modelId": pid}, headers=admin_headers)
    assert second.json()["model"]["available"] is True
    assert db["talentprofile"].find_one({"_id": ObjectId(pid)})["available"] is True


def test_toggle_availability_explicit_value(client, db, admin_headers):
    pid = make_profile(available=True)
    res = client.post("/api/admin/toggle-availability", json={"modelId": pid, "available": True}, headers=admin_headers)
    assert res.json()["model"]["available"] is True


def test_delete_model_survives_storage_failure(client, db, admin_headers):
    app.dependency_overrides[get_storage] = lambda: FakeStorage(fail_delete=True)
    pid = make_profile(photos=2)
    brand = make_account("BRAND")
    db["savedtalent"].insert_one({"brand_id": brand, "profile_id": pid})

    res = client.request("DELETE", "/api/admin/delete-model", json={"modelId": pid}, headers=admin_headers)
    assert res.status_code == 200
    assert db["talentprofile"].count_documents({}) == 0
    assert db["photo"].count_documents({"profile_id": pid}) == 0
    assert db["savedtalent"].count_documents({}) == 0


def test_delete_model_removes_storage_objects(client, db, admin_headers, storage):
    pid = make_profile(photos=2)
    res = client.request("DELETE", "/api/admin/delete-model", json={"modelId": pid}, headers=admin_headers)
    assert res.status_code == 200
    assert sorted(storage.deleted) == sorted([f"models/{pid}_0.jpg", f"models/{pid}_1.jpg"])


def test_update_model_is_partial(client, db, admin_headers):
    pid = make_profile()
    res = client.post("/api/admin/update-model", json={
        "modelId": pid, "location": "Alexandria", "categories": ["BEAUTY", "BEAUTY", "FITNESS"],
    }, headers=admin_headers)
    assert res.status_code == 200
    profile = db["talentprofile"].find_one({"_id": ObjectId(pid)})
    assert profile["location"] == "Alexandria"
    assert profile["categories"] == ["BEAUTY", "FITNESS"]
    assert profile["display_name"] == "Amira"


def test_update_model_validates_fields(client, db, admin_headers):
    pid = make_profile()
    res = client.post("/api/admin/update-model", json={"modelId": pid, "instagramHandle": "Amira2"},
                      headers=admin_headers)
    assert res.status_code == 400
    assert "instagramHandle" in res.json()["fields"]


def test_save_photo_urls_skips_duplicates(client, db, admin_headers):
    pid = make_profile(photos=1)
    existing = f"{FakeStorage.base}models/{pid}_0.jpg"
    res = client.post("/api/admin/save-photo-urls", json={
        "modelId": pid, "urls": [existing, "https://cdn.test/new.jpg", "https://cdn.test/new.jpg"],
    }, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["photos"] == [existing, "https://cdn.test/new.jpg"]


def test_manage_photos_add_and_remove_by_index(client, db, admin_headers, storage):
    pid = make_profile(photos=2)
    files = [("photos", ("extra.jpg", b"extra-bytes", "image/jpeg"))]
    res = client.post(f"/api/admin/manage-photos?modelId={pid}", files=files, headers=admin_headers)
    assert res.status_code == 200
    assert len(res.json()["photos"]) == 3

    res = client.delete(f"/api/admin/manage-photos?modelId={pid}&photoIndex=0", headers=admin_headers)
    assert res.status_code == 200
    assert len(res.json()["photos"]) == 2
    assert f"models/{pid}_0.jpg" in storage.deleted

    res = client.delete(f"/api/admin/manage-photos?modelId={pid}&photoIndex=5", headers=admin_headers)
    assert res.status_code == 400


def test_list_models_by_status(client, db, admin_headers):
    make_profile(approved=False, display_name="Pending One")
    make_profile(approved=True, display_name="Live One")
    pending = client.get("/api/admin/models", headers=admin_headers).json()["items"]
    assert [p["displayName"] for p in pending] == ["Pending One"]
    assert "passwordHash" not in pending[0]["user"]
    everyone = client.get("/api/admin/models?status=all", headers=admin_headers).json()["items"]
    assert len(everyone) == 2


def test_create_admin_only_once(client, db):
    res = client.post("/api/admin/create-admin", json={"name": "Root", "email": "root@bokt.dev", "password": "longenough"})
    assert res.status_code == 201
    res = client.post("/api/admin/create-admin", json={"name": "Two", "email": "two@bokt.dev", "password": "longenough"})
    assert res.status_code == 409


def test_manage_photos_reports_failed_uploads(client, db, admin_headers, storage):
    pid = make_profile(photos=1)
    storage.fail_on.add(b"broken")
    files = [("photos", ("ok.jpg", b"fine", "image/jpeg")), ("photos", ("bad.jpg", b"broken", "image/jpeg"))]
    res = client.post(f"/api/admin/manage-photos?modelId={pid}", files=files, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["failed"] == ["bad.jpg"]
    assert len(res.json()["photos"]) == 2

    files = [("photos", ("bad.jpg", b"broken", "image/jpeg"))]
    res = client.post(f"/api/admin/manage-photos?modelId={pid}", files=files, headers=admin_headers)
    assert res.status_code == 502
    assert db["photo"].count_documents({"profile_id": pid}) == 2
