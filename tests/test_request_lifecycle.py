import asyncio
import re
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from forex.exceptions import (
    AggregationError, ConflictError, InvalidTransitionError, NotFoundError, OperationTimeoutError,
    PermissionDeniedError, ValidationError,
)
from forex.models.request import ApprovalPayload, RejectionPayload, ValidationPayload
from forex.services.files import Upload
from tests.builders import make_form, make_uploads


def validation(currency, deposit=120000.0, balance=80000.0):
    return ValidationPayload(
        validated_account_currency_id=str(currency),
        validated_average_deposit=deposit,
        validated_current_balance=balance,
    )


async def create(service, world, **overrides):
    return await service.create_request(make_form(world, **overrides), make_uploads(), world.maker)


async def create_validated(service, world):
    request = await create(service, world)
    await service.validate_request(request["_id"], validation(world.etb), world.checker)
    return request


# Create

@pytest.mark.anyio
async def test_create_request_starts_new_with_code_and_branch_from_profile(service, world, store, outbox):
    request = await create(service, world)

    assert request["request_status"] == "New"
    assert re.fullmatch(r"REQ-[0-9a-f]{8}", request["request_code"])
    assert request["branch_id"] == world.branch
    assert request["department_id"] is None
    assert request["average_deposit"] == 150000.0
    assert request["total_fcy_generated"] == 25000.5
    assert request["created_by"] == world.maker.user_id
    assert request["creator"]["profile"] == {"first_name": "Abebe", "middle_name": "Kebede", "last_name": "Bekele"}
    assert request["branch"]["name"] == "Bole"
    assert request["fcy_requested"]["short_code"] == "USD"
    assert request["requesting_as"]["name"] == "Individual"
    assert len(store.collections["requests"]) == 1
    assert outbox.kinds() == ["submitted"]
    assert outbox.sent[0][2] == "abebe@coop.test"


@pytest.mark.anyio
async def test_created_attachments_read_back_as_stored_files(service, world, store):
    visa = Upload("../../etc/visa scan.png", b"\x89PNG visa", "image/png")
    request = await service.create_request(make_form(world), make_uploads(visa_attachment=visa), world.maker)

    fetched = await service.get_request(request["_id"])
    for field, alias in (("passport_attachment", "passport"), ("ticket_attachment", "ticket"),
                         ("visa_attachment", "visa")):
        stored = store.get("files", fetched[field])
        assert fetched[alias]["url"] == stored["url"]
        assert fetched[alias]["name"] == stored["name"]
    assert fetched["visa"]["name"] == "visa_scan.png"
    assert "business_license" not in fetched


@pytest.mark.anyio
async def test_create_with_empty_accounts_to_deduct_fails_without_writes(service, world, store):
    with pytest.raises(ValidationError) as excinfo:
        await create(service, world, accounts_to_deduct=[])

    assert "accounts_to_deduct" in excinfo.value.message
    assert excinfo.value.status_code == 400
    assert store.collections["requests"] == []
    assert store.collections["files"] == []


@pytest.mark.anyio
@pytest.mark.parametrize("field, label", [
    ("average_deposit", "Invalid Average Deposit value"),
    ("total_fcy_generated", "Invalid Total FCY Generated value"),
    ("current_fcy_performance", "Invalid Current FCY Performance value"),
    ("fcy_requested_amount", "Invalid FCY Requested Amount value"),
])
async def test_create_with_unparsable_number_names_the_field(service, world, store, field, label):
    with pytest.raises(ValidationError) as excinfo:
        await create(service, world, **{field: "abc"})

    assert excinfo.value.message == label
    assert store.collections["requests"] == []


@pytest.mark.anyio
async def test_create_requires_passport_and_ticket(service, world, store):
    uploads = make_uploads()
    del uploads["ticket_attachment"]

    with pytest.raises(ValidationError) as excinfo:
        await service.create_request(make_form(world), uploads, world.maker)

    assert excinfo.value.message == "ticket_attachment is required"
    assert store.collections["files"] == []


@pytest.mark.anyio
async def test_create_rejects_malformed_reference_with_value_echoed(service, world):
    with pytest.raises(ValidationError) as excinfo:
        await create(service, world, fcy_requested_id="not-an-id")

    assert "not-an-id" in excinfo.value.message


@pytest.mark.anyio
async def test_create_rejects_soft_deleted_reference(service, world, store):
    await store.update_one("travel_purposes", {"_id": world.purpose}, {"is_deleted": True})

    with pytest.raises(NotFoundError):
        await create(service, world)
    assert store.collections["requests"] == []


@pytest.mark.anyio
async def test_create_uses_explicit_department(service, world):
    request = await create(service, world, department_id=str(world.department))

    assert request["department_id"] == world.department
    assert request["branch_id"] is None
    assert request["department"]["name"] == "Forex Desk"


# Validate

@pytest.mark.anyio
async def test_validate_unknown_request_fails_without_mutation(service, world, store):
    await create(service, world)
    before = [dict(document) for document in store.collections["requests"]]

    with pytest.raises(NotFoundError) as excinfo:
        await service.validate_request(ObjectId(), validation(world.etb), world.checker)

    assert excinfo.value.message == "the request id doesn't exist"
    assert store.collections["requests"] == before


@pytest.mark.anyio
async def test_validate_stamps_validator_and_fields(service, world):
    request = await create(service, world)

    validated = await service.validate_request(request["_id"], validation(world.etb), world.checker)

    assert validated["request_status"] == "Validated"
    assert validated["validated_by"] == world.checker.user_id
    assert validated["validated_average_deposit"] == 120000.0
    assert validated["validated_account_currency"]["short_code"] == "ETB"
    assert validated["validator"]["profile"]["first_name"] == "Sara"


@pytest.mark.anyio
async def test_second_validation_overwrites_the_first(service, world):
    request = await create(service, world)
    await service.validate_request(request["_id"], validation(world.etb, deposit=1000), world.checker)

    again = await service.validate_request(request["_id"], validation(world.usd, deposit=2000), world.checker)

    assert again["request_status"] == "Validated"
    assert again["validated_average_deposit"] == 2000
    assert again["validated_account_currency_id"] == world.usd


@pytest.mark.anyio
async def test_concurrent_validations_last_write_wins(service, world, store):
    request = await create(service, world)

    await asyncio.gather(
        service.validate_request(request["_id"], validation(world.etb), world.checker),
        service.validate_request(request["_id"], validation(world.usd), world.checker),
    )

    stored = store.get("requests", request["_id"])
    assert stored["request_status"] == "Validated"
    assert stored["validated_account_currency_id"] in (world.etb, world.usd)


@pytest.mark.anyio
async def test_validate_cannot_move_an_approved_request_back(service, world):
    request = await create_validated(service, world)
    await service.approve_request(
        request["_id"], ApprovalPayload(approved_currency_ids=[str(world.usd)], approved_amounts=[500]), world.checker
    )

    with pytest.raises(InvalidTransitionError):
        await service.validate_request(request["_id"], validation(world.etb), world.checker)


# Approve

@pytest.mark.anyio
async def test_approve_requires_validated_status(service, world):
    request = await create(service, world)

    with pytest.raises(InvalidTransitionError):
        await service.approve_request(
            request["_id"], ApprovalPayload(approved_currency_ids=[str(world.usd)], approved_amounts=[100]),
            world.checker,
        )


@pytest.mark.anyio
async def test_approve_surfaces_unparsable_currency_literal(service, world):
    request = await create_validated(service, world)

    with pytest.raises(ValidationError) as excinfo:
        await service.approve_request(
            request["_id"],
            ApprovalPayload(approved_currency_ids=[str(world.usd), "zz-not-hex"], approved_amounts=[100, 200]),
            world.checker,
        )

    assert "zz-not-hex" in excinfo.value.message


@pytest.mark.anyio
async def test_approve_rejects_mismatched_lists(service, world, store):
    request = await create_validated(service, world)

    with pytest.raises(ValidationError):
        await service.approve_request(
            request["_id"],
            ApprovalPayload(approved_currency_ids=[str(world.usd), str(world.eur)], approved_amounts=[100]),
            world.checker,
        )
    assert store.get("requests", request["_id"])["request_status"] == "Validated"


@pytest.mark.anyio
async def test_approve_rejects_non_positive_amounts(service, world):
    request = await create_validated(service, world)

    with pytest.raises(ValidationError):
        await service.approve_request(
            request["_id"], ApprovalPayload(approved_currency_ids=[str(world.usd)], approved_amounts=[0]),
            world.checker,
        )


@pytest.mark.anyio
async def test_approve_stores_parallel_lists_and_notifies_requester(service, world, outbox):
    request = await create_validated(service, world)

    approved = await service.approve_request(
        request["_id"],
        ApprovalPayload(approved_currency_ids=[str(world.usd), str(world.eur)], approved_amounts=[1500, 700]),
        world.checker,
    )

    assert approved["request_status"] == "Approved"
    assert approved["acceptance_status"] == "Pending"
    assert len(approved["approved_currency_ids"]) == len(approved["approved_amounts"]) == 2
    assert {currency["_id"] for currency in approved["approved_currencies"]} == {world.usd, world.eur}
    assert approved["approver"]["_id"] == world.checker.user_id
    assert ("approved", request["request_code"], "abebe@coop.test") in outbox.sent


@pytest.mark.anyio
async def test_approve_unknown_currency_is_not_found(service, world):
    request = await create_validated(service, world)

    with pytest.raises(NotFoundError):
        await service.approve_request(
            request["_id"], ApprovalPayload(approved_currency_ids=[str(ObjectId())], approved_amounts=[10]),
            world.checker,
        )


# Reject, authorize, accept, decline

@pytest.mark.anyio
async def test_reject_records_reason_and_notifies(service, world, outbox):
    request = await create(service, world)

    rejected = await service.reject_request(
        request["_id"], RejectionPayload(rejection_reason="Missing visa"), world.checker
    )

    assert rejected["request_status"] == "Rejected"
    assert rejected["rejection_reason"] == "Missing visa"
    assert rejected["rejecter"]["username"] == "sara"
    assert outbox.kinds()[-1] == "rejected"


@pytest.mark.anyio
async def test_rejected_request_is_terminal(service, world):
    request = await create(service, world)
    await service.reject_request(request["_id"], RejectionPayload(rejection_reason="No"), world.checker)

    with pytest.raises(InvalidTransitionError):
        await service.validate_request(request["_id"], validation(world.etb), world.checker)


@pytest.mark.anyio
async def test_authorize_by_same_branch_then_validate(service, world, outbox):
    request = await create(service, world)

    authorized = await service.authorize_request(request["_id"], world.maker)
    assert authorized["request_status"] == "Authorized"
    assert authorized["authorizer"]["username"] == "abebe"
    assert outbox.kinds()[-1] == "authorized"

    with pytest.raises(InvalidTransitionError):
        await service.authorize_request(request["_id"], world.maker)

    validated = await service.validate_request(request["_id"], validation(world.etb), world.checker)
    assert validated["request_status"] == "Validated"


@pytest.mark.anyio
async def test_authorize_from_another_branch_is_denied(service, world):
    request = await create(service, world)
    outsider = world.maker.model_copy(update={"user_id": ObjectId(), "branch_id": world.other_branch})

    with pytest.raises(PermissionDeniedError):
        await service.authorize_request(request["_id"], outsider)


@pytest.mark.anyio
async def test_accept_and_decline_only_after_approval(service, world):
    request = await create_validated(service, world)
    with pytest.raises(InvalidTransitionError):
        await service.accept_request(request["_id"], world.checker)

    await service.approve_request(
        request["_id"], ApprovalPayload(approved_currency_ids=[str(world.usd)], approved_amounts=[100]), world.checker
    )
    accepted = await service.accept_request(request["_id"], world.checker)

    assert accepted["request_status"] == "Accepted"
    assert accepted["acceptance_status"] == "Accepted"
    assert accepted["accepter"]["username"] == "sara"
    with pytest.raises(InvalidTransitionError):
        await service.decline_request(request["_id"], world.checker)


@pytest.mark.anyio
async def test_decline_after_approval(service, world):
    request = await create_validated(service, world)
    await service.approve_request(
        request["_id"], ApprovalPayload(approved_currency_ids=[str(world.usd)], approved_amounts=[100]), world.checker
    )

    declined = await service.decline_request(request["_id"], world.checker)

    assert declined["request_status"] == "Declined"
    assert declined["acceptance_status"] == "Declined"
    assert declined["decliner"]["_id"] == world.checker.user_id


# Locks

@pytest.mark.anyio
async def test_lock_held_by_another_user_blocks_validation(service, world):
    request = await create(service, world)
    other_checker = world.checker.model_copy(update={"user_id": ObjectId()})
    await service.lock_request(request["_id"], other_checker)

    with pytest.raises(ConflictError):
        await service.validate_request(request["_id"], validation(world.etb), world.checker)
    with pytest.raises(ConflictError):
        await service.lock_request(request["_id"], world.checker)


@pytest.mark.anyio
async def test_expired_lock_is_free(service, world, store):
    request = await create(service, world)
    await store.update_one("requests", {"_id": request["_id"]}, {
        "locked_by": ObjectId(),
        "locked_at": datetime.utcnow() - timedelta(hours=1),
        "lock_expires_at": datetime.utcnow() - timedelta(minutes=45),
    })

    validated = await service.validate_request(request["_id"], validation(world.etb), world.checker)

    assert validated["request_status"] == "Validated"
    assert validated["locked_by"] is None


@pytest.mark.anyio
async def test_lock_holder_can_validate_and_unlock(service, world):
    request = await create(service, world)
    locked = await service.lock_request(request["_id"], world.checker)
    assert locked["locked_by"] == world.checker.user_id
    assert locked["lock_expires_at"] > datetime.utcnow() + timedelta(minutes=14)

    unlocked = await service.unlock_request(request["_id"], world.checker)
    assert unlocked["locked_by"] is None


# Update and delete

@pytest.mark.anyio
async def test_update_only_while_new(service, world):
    request = await create(service, world)

    updated = await service.update_request(request["_id"], make_form(world, fcy_requested_amount="7500"), world.maker)
    assert updated["fcy_requested_amount"] == 7500
    assert updated["updater"]["username"] == "abebe"

    await service.validate_request(request["_id"], validation(world.etb), world.checker)
    with pytest.raises(InvalidTransitionError):
        await service.update_request(request["_id"], make_form(world), world.maker)


@pytest.mark.anyio
async def test_soft_deleted_request_is_excluded_from_reads(service, world, store):
    kept = await create(service, world)
    removed = await create(service, world)

    await service.delete_request(removed["_id"], world.maker)

    assert store.get("requests", removed["_id"])["is_deleted"] is True
    assert store.get("requests", removed["_id"])["deleted_by"] == world.maker.user_id
    assert [request["_id"] for request in await service.get_all_requests()] == [kept["_id"]]
    with pytest.raises(NotFoundError):
        await service.get_request(removed["_id"])
    with pytest.raises(NotFoundError):
        await service.validate_request(removed["_id"], validation(world.etb), world.checker)


# Listing

@pytest.mark.anyio
async def test_get_all_requests_on_empty_store_reports_no_documents(service, world):
    with pytest.raises(NotFoundError) as excinfo:
        await service.get_all_requests()

    assert excinfo.value.message == "no documents"


@pytest.mark.anyio
async def test_status_listing_returns_empty_list(service, world):
    await create(service, world)

    assert await service.get_requests_by_status("Approved") == []
    assert len(await service.get_requests_by_status("New")) == 1
    with pytest.raises(ValidationError):
        await service.get_requests_by_status("Pending")


@pytest.mark.anyio
async def test_org_listing_filters_by_branch(service, world):
    await create(service, world)
    await create(service, world, branch_id=str(world.other_branch))

    mine = await service.get_org_requests(world.maker)

    assert len(mine) == 1
    assert mine[0]["branch_id"] == world.branch
    assert await service.get_org_requests(world.maker, status="Validated") == []


# Partial failures

def fail_on_prefix(file_service, prefix, error):
    original = file_service.store

    async def store(upload, file_prefix):
        if file_prefix == prefix:
            await error()
        return await original(upload, file_prefix)

    return store


@pytest.mark.anyio
async def test_failed_later_attachment_persists_no_request(service, world, store, caplog):
    async def disk_full():
        raise OSError("no space left on device")

    service.file_service.store = fail_on_prefix(service.file_service, "ticket", disk_full)

    with pytest.raises(OSError):
        await create(service, world)

    assert store.collections["requests"] == []
    [orphan] = store.collections["files"]
    assert str(orphan["_id"]) in caplog.text
    assert "orphaned file records" in caplog.text


@pytest.mark.anyio
async def test_deadline_during_attachments_still_logs_orphans(service, world, store, settings, caplog):
    async def stall():
        await asyncio.sleep(1)

    settings.APP_TIMEOUT_SECONDS = 0.1
    service.file_service.store = fail_on_prefix(service.file_service, "ticket", stall)

    with pytest.raises(OperationTimeoutError):
        await create(service, world)

    assert store.collections["requests"] == []
    [orphan] = store.collections["files"]
    assert str(orphan["_id"]) in caplog.text


@pytest.mark.anyio
async def test_read_back_failure_after_insert_leaves_the_request_stored(service, world, store):
    store.fail_on.add("profiles")

    with pytest.raises(AggregationError):
        await create(service, world, branch_id=str(world.branch))

    [stored] = store.collections["requests"]
    assert stored["request_status"] == "New"
