import pytest

from core.errors import NotFoundError, ValidationError
from core.schemas import BeneficiaryPayload
from modules import activity_log, beneficiaries, children


@pytest.mark.asyncio
async def test_single_child_write_paths(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))
    pwd_id = record["pwd_id"]

    need = await children.create_child(
        db, children.support_needs, pwd_id, {"assistance_needed": "Hearing aid"}, actor_id=seed["officer"],
    )
    assert need["pwd_id"] == pwd_id

    updated = await children.update_child(
        db, children.support_needs, pwd_id, need["need_id"], {"assistance_needed": "Two hearing aids"},
    )
    assert updated["assistance_needed"] == "Two hearing aids"

    rows = await children.list_children(db, children.support_needs, pwd_id)
    assert [r["assistance_needed"] for r in rows] == ["Two hearing aids"]

    await children.delete_child(db, children.support_needs, pwd_id, need["need_id"])
    assert await children.list_children(db, children.support_needs, pwd_id) == []

    logs = await activity_log.list_entries(db, user_id=seed["officer"], search="support need")
    assert logs["total"] == 1


@pytest.mark.asyncio
async def test_child_requires_existing_parent(db, seed):
    with pytest.raises(NotFoundError):
        await children.create_child(db, children.guardians, 555, {"name": "Nobody"})


@pytest.mark.asyncio
async def test_child_required_field(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))

    with pytest.raises(ValidationError) as excinfo:
        await children.create_child(db, children.education, record["pwd_id"], {"school_name": "Osu Presby"})

    assert "education_level" in excinfo.value.message


@pytest.mark.asyncio
async def test_child_never_changes_owner(db, seed, beneficiary_fields):
    first = await beneficiaries.create_aggregate(
        db, BeneficiaryPayload(**beneficiary_fields(), guardians=[{"name": "Kofi Mensah"}])
    )
    second = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields(full_name="Yaw")))
    guardian_id = first["guardians"][0]["guardian_id"]

    updated = await children.update_child(
        db, children.guardians, first["pwd_id"], guardian_id, {"pwd_id": second["pwd_id"], "phone": "0500000000"},
    )
    assert updated["pwd_id"] == first["pwd_id"]

    with pytest.raises(NotFoundError):
        await children.delete_child(db, children.guardians, second["pwd_id"], guardian_id)
