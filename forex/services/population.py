"""
Request Population
Ordered fetch-and-attach steps that rebuild the display view of a request.

Each step takes a request document and the document store and returns a new
document with one family of references resolved. A join that does not
resolve leaves its alias out entirely, so consumers can tell "never set"
apart from "resolution failed".
"""
from typing import Any, Dict, Optional

from forex.models.request import ATTACHMENT_FIELDS, ForexRequest
from forex.repositories.base import active

# actor reference -> alias of the resolved user
ACTOR_FIELDS = (
    ("created_by", "creator"),
    ("requested_by", "requester"),
    ("updated_by", "updater"),
    ("authorized_by", "authorizer"),
    ("validated_by", "validator"),
    ("approved_by", "approver"),
    ("rejected_by", "rejecter"),
    ("accepted_by", "accepter"),
    ("declined_by", "decliner"),
)

# single reference -> (alias, collection)
REFERENCE_FIELDS = (
    ("department_id", "department", "departments"),
    ("branch_id", "branch", "branches"),
    ("travel_country_id", "travel_country", "countries"),
    ("travel_purpose_id", "travel_purpose", "travel_purposes"),
    ("account_currency_id", "account_currency", "currencies"),
    ("fcy_requested_id", "fcy_requested", "currencies"),
    ("validated_account_currency_id", "validated_account_currency", "currencies"),
    ("requesting_as_id", "requesting_as", "customer_types"),
)

USER_FIELDS = ("_id", "username", "status")
PROFILE_FIELDS = ("first_name", "middle_name", "last_name")

# Raw fields always projected; deletion bookkeeping never leaves the store
SCALAR_FIELDS = ("_id",) + tuple(
    name for name in ForexRequest.model_fields if name not in ("id", "deleted_by", "deleted_at")
)
JOINED_FIELDS = (
    tuple(alias for _, alias in ACTOR_FIELDS)
    + tuple(alias for _, alias, _ in REFERENCE_FIELDS)
    + ("approved_currencies",)
    + tuple(ATTACHMENT_FIELDS.values())
)


async def _lookup(store, collection: str, id: Any) -> Optional[Dict[str, Any]]:
    return await store.find_one(collection, active({"_id": id}))


async def attach_actors(document: Dict[str, Any], store) -> Dict[str, Any]:
    """Resolve each workflow actor to its user and that user's profile names"""
    populated = dict(document)
    for field, alias in ACTOR_FIELDS:
        user_id = document.get(field)
        if user_id is None:
            continue
        user = await _lookup(store, "users", user_id)
        if user is None:
            continue
        actor = {key: user[key] for key in USER_FIELDS if key in user}
        profile_id = user.get("profile_id")
        profile = await _lookup(store, "profiles", profile_id) if profile_id else None
        if profile is not None:
            actor["profile"] = {key: profile[key] for key in PROFILE_FIELDS if key in profile}
        populated[alias] = actor
    return populated


async def attach_references(document: Dict[str, Any], store) -> Dict[str, Any]:
    """Resolve branch, department, country, purpose, currency and customer type"""
    populated = dict(document)
    for field, alias, collection in REFERENCE_FIELDS:
        reference = document.get(field)
        if reference is None:
            continue
        resolved = await _lookup(store, collection, reference)
        if resolved is not None:
            populated[alias] = resolved
    return populated


async def attach_approved_currencies(document: Dict[str, Any], store) -> Dict[str, Any]:
    """
    Resolve all approved currencies in one batch.

    The result follows store order, not approved_currency_ids order;
    consumers pair amounts with currencies by matching `_id`.
    """
    populated = dict(document)
    currency_ids = document.get("approved_currency_ids")
    if not currency_ids:
        return populated
    currencies = await store.find("currencies", active({"_id": {"$in": list(currency_ids)}}))
    if currencies:
        populated["approved_currencies"] = currencies
    return populated


async def attach_attachments(document: Dict[str, Any], store) -> Dict[str, Any]:
    populated = dict(document)
    for field, alias in ATTACHMENT_FIELDS.items():
        file_id = document.get(field)
        if file_id is None:
            continue
        resolved = await _lookup(store, "files", file_id)
        if resolved is not None:
            populated[alias] = resolved
    return populated


POPULATION_STEPS = (
    attach_actors,
    attach_references,
    attach_approved_currencies,
    attach_attachments,
)


def project(document: Dict[str, Any]) -> Dict[str, Any]:
    """Cut a document down to the allow-list, dropping joins that did not resolve"""
    view = {key: document[key] for key in SCALAR_FIELDS if key in document}
    for alias in JOINED_FIELDS:
        if document.get(alias) is not None:
            view[alias] = document[alias]
    return view


async def populate_document(document: Dict[str, Any], store, populate: bool = True) -> Dict[str, Any]:
    if populate:
        for step in POPULATION_STEPS:
            document = await step(document, store)
    return project(document)
