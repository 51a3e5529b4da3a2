import pytest

from core.errors import NotFoundError, ValidationError
from core.schemas import AssistanceRequestPayload, BeneficiaryPayload
from core.workflow import ASSISTANCE_STATUS, BENEFICIARY_STATUS, REQUEST_STATUS, apply_status
from db.models import PwdRecord
from modules import activity_log, assistance_requests, beneficiaries


def test_status_vocabularies():
    assert BENEFICIARY_STATUS.states == ("pending", "approved", "declined")
    assert REQUEST_STATUS.states == ("pending", "review", "ready_to_access", "assessed", "declined")
    assert ASSISTANCE_STATUS.states == ("pending", "approved", "disapproved")
    assert "approved" in BENEFICIARY_STATUS
    assert "approved" not in REQUEST_STATUS


def test_validate_is_case_sensitive():
    with pytest.raises(ValidationError) as excinfo:
        BENEFICIARY_STATUS.validate("Approved")
    assert "pending, approved, declined" in excinfo.value.message


@pytest.mark.asyncio
async def test_set_status_rejects_unknown_value(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))

    with pytest.raises(ValidationError):
        await beneficiaries.set_beneficiary_status(db, record["pwd_id"], "archived", actor_id=seed["officer"])

    reloaded = await beneficiaries.get_aggregate(db, record["pwd_id"])
    assert reloaded["status"] == "pending"


@pytest.mark.asyncio
async def test_set_status_requires_a_value(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))

    with pytest.raises(ValidationError) as excinfo:
        await beneficiaries.set_beneficiary_status(db, record["pwd_id"], "")
    assert excinfo.value.message == "Status field is required"


@pytest.mark.asyncio
async def test_approve_logs_name_and_transition(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))

    updated = await beneficiaries.set_beneficiary_status(db, record["pwd_id"], "approved", actor_id=seed["reviewer"])

    assert updated["status"] == "approved"
    logs = await activity_log.list_entries(db, user_id=seed["reviewer"])
    assert logs["total"] == 1
    entry = logs["logs"][0]["activity"]
    assert "Ama Mensah" in entry
    assert "from pending to approved" in entry


@pytest.mark.asyncio
async def test_any_state_may_follow_any_other(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))

    for state in ("declined", "approved", "pending", "declined"):
        updated = await beneficiaries.set_beneficiary_status(db, record["pwd_id"], state)
        assert updated["status"] == state


@pytest.mark.asyncio
async def test_unknown_id_reported_before_bad_state(db, seed):
    with pytest.raises(NotFoundError):
        await apply_status(db, PwdRecord, 12345, BENEFICIARY_STATUS, "not-a-state")


@pytest.mark.asyncio
async def test_request_review_saves_notes(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))
    request = await assistance_requests.create_request(
        db,
        AssistanceRequestPayload(
            assistance_type_id=seed["wheelchair"], beneficiary_id=record["pwd_id"],
            description="Needs a wheelchair", amount_value_cost="",
        ),
        actor_id=seed["officer"],
    )
    assert request["status"] == "pending"
    assert request["amount_value_cost"] is None
    assert request["requested_by"] == seed["officer"]

    reviewed = await assistance_requests.set_request_status(
        db, request["request_id"], "ready_to_access", notes="Supplier confirmed", actor_id=seed["reviewer"],
    )

    assert reviewed["status"] == "ready_to_access"
    assert reviewed["admin_review_notes"] == "Supplier confirmed"
    logs = await activity_log.list_entries(db, user_id=seed["reviewer"])
    assert "from 'pending' to 'ready_to_access'" in logs["logs"][0]["activity"]
    assert "Ama Mensah" in logs["logs"][0]["activity"]


@pytest.mark.asyncio
async def test_request_rejects_beneficiary_vocabulary(db, seed, beneficiary_fields):
    record = await beneficiaries.create_aggregate(db, BeneficiaryPayload(**beneficiary_fields()))
    request = await assistance_requests.create_request(
        db,
        AssistanceRequestPayload(
            assistance_type_id=seed["grant"], beneficiary_id=record["pwd_id"], description="School fees",
        ),
    )

    with pytest.raises(ValidationError):
        await assistance_requests.set_request_status(db, request["request_id"], "approved")
