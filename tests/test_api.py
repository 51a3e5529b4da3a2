import pytest

from core.storage import storage


@pytest.fixture
def headers(seed):
    return {"X-User-Id": str(seed["officer"])}


@pytest.mark.asyncio
async def test_root_reports_status(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "operational"


@pytest.mark.asyncio
async def test_beneficiary_lifecycle(client, seed, beneficiary_fields, headers):
    body = {**beneficiary_fields(), "guardians": [{"name": "Kofi Mensah"}]}

    resp = await client.post("/beneficiaries", json=body, headers=headers)
    assert resp.status_code == 201
    created = resp.json()
    assert created["status"] == "success"
    pwd_id = created["data"]["pwd_id"]
    assert len(created["data"]["guardians"]) == 1

    resp = await client.put(f"/beneficiaries/{pwd_id}", json={"occupation": "Nurse"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["occupation"] == "Nurse"

    resp = await client.patch(f"/beneficiaries/{pwd_id}/status", json={"status": "approved"}, headers=headers)
    assert resp.json()["data"]["status"] == "approved"

    resp = await client.get("/beneficiaries", params={"status": "approved"})
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/activity-logs", params={"user_id": seed["officer"]})
    assert resp.json()["data"]["total"] == 3

    resp = await client.delete(f"/beneficiaries/{pwd_id}", headers=headers)
    assert resp.status_code == 200

    resp = await client.get(f"/beneficiaries/{pwd_id}")
    assert resp.status_code == 404
    assert resp.json()["status"] == "error"


@pytest.mark.asyncio
async def test_error_envelope_codes(client, seed, beneficiary_fields):
    resp = await client.post("/beneficiaries", json=beneficiary_fields(quarter="Q9"))
    assert resp.status_code == 400
    assert "quarter" in resp.json()["message"]

    resp = await client.post("/beneficiaries", json=beneficiary_fields(community_id=4040))
    assert resp.status_code == 409
    assert resp.json()["errors"] == ["Community ID 4040 does not exist"]

    resp = await client.post("/beneficiaries", json={"full_name": "Only a name"})
    assert resp.status_code == 400
    assert "Missing required fields" in resp.json()["message"]


@pytest.mark.asyncio
async def test_delete_blocked_returns_conflict(client, seed, beneficiary_fields):
    pwd_id = (await client.post("/beneficiaries", json=beneficiary_fields())).json()["data"]["pwd_id"]
    resp = await client.post("/assistance/requests", json={
        "assistance_type_id": seed["wheelchair"], "beneficiary_id": pwd_id, "description": "Wheelchair",
    })
    assert resp.status_code == 201
    request_id = resp.json()["data"]["request_id"]

    resp = await client.delete(f"/beneficiaries/{pwd_id}")
    assert resp.status_code == 409

    resp = await client.patch(
        f"/assistance/requests/{request_id}/status", json={"status": "assessed", "notes": "Delivered"},
    )
    assert resp.json()["data"]["admin_review_notes"] == "Delivered"


@pytest.mark.asyncio
async def test_child_collection_endpoints(client, seed, beneficiary_fields):
    pwd_id = (await client.post("/beneficiaries", json=beneficiary_fields())).json()["data"]["pwd_id"]

    resp = await client.post(f"/beneficiaries/{pwd_id}/education", json={"education_level": "JHS"})
    assert resp.status_code == 201
    education_id = resp.json()["data"]["education_id"]

    resp = await client.put(f"/beneficiaries/{pwd_id}/education/{education_id}", json={"school_name": "Osu"})
    assert resp.json()["data"]["school_name"] == "Osu"

    resp = await client.get(f"/beneficiaries/{pwd_id}/pets")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_reference_endpoints(client, seed):
    resp = await client.post("/reference/communities", json={"community_name": "Labadi"})
    assert resp.status_code == 201

    resp = await client.post("/reference/communities", json={"community_name": "Labadi"})
    assert resp.status_code == 400

    resp = await client.delete(f"/reference/disability-categories/{seed['physical']}")
    assert resp.status_code == 409

    resp = await client.get("/reference/disability-types", params={"category_id": seed["physical"]})
    assert [t["type_name"] for t in resp.json()["data"]] == ["Amputation"]


@pytest.mark.asyncio
async def test_document_upload_and_download(client, seed, beneficiary_fields):
    pwd_id = (await client.post("/beneficiaries", json=beneficiary_fields())).json()["data"]["pwd_id"]

    resp = await client.post(
        "/documents/upload",
        data={"related_type": "pwd", "related_id": str(pwd_id), "document_type": "ghana_card"},
        files={"file": ("card.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert resp.status_code == 201
    document = resp.json()["data"]
    assert len(storage.files) == 1

    resp = await client.get(f"/documents/{document['document_id']}/file")
    assert resp.status_code == 200
    assert resp.content == b"%PDF-1.4"

    resp = await client.get("/documents", params={"related_type": "pwd", "related_id": pwd_id})
    assert len(resp.json()["data"]) == 1


@pytest.mark.asyncio
async def test_statistics_and_log_cleanup(client, seed, beneficiary_fields):
    await client.post("/beneficiaries", json=beneficiary_fields())

    resp = await client.get("/statistics/quarter", params={"quarter": "Q2", "year": 2024})
    assert resp.json()["data"]["total"] == 1

    resp = await client.get("/statistics/year/2024")
    assert len(resp.json()["data"]["quarters"]) == 4

    resp = await client.delete("/activity-logs/cleanup", params={"days": 7})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_assistance_record_update_and_summary(client, seed, beneficiary_fields, headers):
    pwd_id = (await client.post("/beneficiaries", json=beneficiary_fields())).json()["data"]["pwd_id"]
    resp = await client.post("/assistance/records", headers=headers, json={
        "assistance_type_id": seed["wheelchair"], "date_of_support": "2024-08-19", "beneficiary_id": pwd_id,
    })
    assert resp.status_code == 201
    assistance_id = resp.json()["data"]["assistance_id"]

    resp = await client.put(
        f"/assistance/records/{assistance_id}", json={"status": "approved", "pre_assessment": True}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "approved"

    resp = await client.put("/assistance/records/999", json={"pre_assessment": True})
    assert resp.status_code == 404

    resp = await client.get("/statistics/assistance-records/2024")
    assert resp.json()["data"]["quarters"][2]["approved"] == 1


@pytest.mark.asyncio
async def test_single_log_entry_and_duplicate_email(client, seed, beneficiary_fields, headers):
    await client.post("/beneficiaries", json=beneficiary_fields(), headers=headers)
    resp = await client.get("/activity-logs", params={"user_id": seed["officer"]})
    log_id = resp.json()["data"]["logs"][0]["log_id"]

    resp = await client.get(f"/activity-logs/{log_id}")
    assert resp.status_code == 200
    assert resp.json()["data"]["username"] == "officer"

    resp = await client.get("/activity-logs/9999")
    assert resp.status_code == 404

    resp = await client.post("/reference/users", json={
        "username": "clerk", "email": "reviewer@example.org", "role_id": seed["role"],
    })
    assert resp.status_code == 400
    assert "email" in resp.json()["message"]
