from datetime import date

import pytest

from core.errors import NotFoundError, ReferentialIntegrityError, ValidationError
from core.schemas import AssistancePayload, BeneficiaryPayload
from modules import activity_log, assistance, beneficiaries, statistics


@pytest.fixture
def make_record(db, seed, beneficiary_fields):
    async def _make(**overrides):
        pwd = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))
        fields = {
            "assistance_type_id": seed["wheelchair"],
            "date_of_support": date(2024, 5, 2),
            "beneficiary_id": pwd["pwd_id"],
        }
        fields.update(overrides)
        return await assistance.create_assistance(db, AssistancePayload(**fields), actor_id=seed["officer"])
    return _make


@pytest.mark.asyncio
async def test_create_defaults_admin_to_actor(db, seed, make_record):
    record = await make_record()

    assert record["admin_id"] == seed["officer"]
    assert record["status"] == "pending"
    assert record["beneficiary_name"] == "Ama Mensah"
    assert record["assistance_type_name"] == "Wheelchair"


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(db, seed, make_record):
    record = await make_record(assessment_notes="Measured for chair")

    updated = await assistance.update_assistance(
        db, record["assistance_id"],
        AssistancePayload(assistance_type_id=seed["grant"], pre_assessment=True),
        actor_id=seed["reviewer"],
    )

    assert updated["assistance_type_name"] == "Education grant"
    assert updated["pre_assessment"] is True
    assert updated["assessment_notes"] == "Measured for chair"
    assert updated["date_of_support"] == "2024-05-02"

    logs = await activity_log.list_entries(db, user_id=seed["reviewer"])
    assert logs["logs"][0]["activity"] == f"Updated assistance record #{record['assistance_id']}"


@pytest.mark.asyncio
async def test_update_with_status(db, seed, make_record):
    record = await make_record()

    updated = await assistance.update_assistance(
        db, record["assistance_id"], AssistancePayload(status="approved"),
    )
    assert updated["status"] == "approved"

    with pytest.raises(ValidationError):
        await assistance.update_assistance(db, record["assistance_id"], AssistancePayload(status="assessed"))
    assert (await assistance.get_assistance(db, record["assistance_id"]))["status"] == "approved"


@pytest.mark.asyncio
async def test_update_rejects_cleared_or_unknown_references(db, seed, make_record):
    record = await make_record()

    with pytest.raises(ValidationError) as excinfo:
        await assistance.update_assistance(db, record["assistance_id"], AssistancePayload(beneficiary_id=None))
    assert excinfo.value.errors == ["beneficiary_id"]

    with pytest.raises(ReferentialIntegrityError) as excinfo:
        await assistance.update_assistance(db, record["assistance_id"], AssistancePayload(assistance_type_id=404))
    assert excinfo.value.errors == ["Assistance type ID 404 does not exist"]

    unchanged = await assistance.get_assistance(db, record["assistance_id"])
    assert unchanged["assistance_type_id"] == seed["wheelchair"]


@pytest.mark.asyncio
async def test_update_unknown_record(db, seed):
    with pytest.raises(NotFoundError):
        await assistance.update_assistance(db, 4242, AssistancePayload(status="bogus"))


@pytest.mark.asyncio
async def test_records_summarised_by_quarter_of_support(db, seed, make_record):
    await make_record(date_of_support=date(2024, 1, 15))
    await make_record(date_of_support=date(2024, 3, 31), status="approved")
    await make_record(date_of_support=date(2024, 11, 3), status="disapproved")
    await make_record(date_of_support=date(2023, 12, 30))

    summary = await statistics.assistance_records(db, 2024)

    assert summary["total"] == 3
    q1, q2, q3, q4 = summary["quarters"]
    assert (q1["quarter"], q1["total"], q1["pending"], q1["approved"]) == ("Q1", 2, 1, 1)
    assert q2["total"] == 0 and q3["total"] == 0
    assert q4["disapproved"] == 1
