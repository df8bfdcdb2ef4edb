from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from forex.app import create_app
from forex.config import Settings
from forex.container import Container
from forex.models.user import CurrentUser
from forex.services.security import get_password_hash
from tests.fakes import InMemoryStore, Outbox

MAKER_PERMISSIONS = ["request:add", "request:view", "request:update", "request:authorize", "request:delete"]
CHECKER_PERMISSIONS = [
    "request:view", "request:validate", "request:approve", "request:reject",
    "request:accept", "request:decline",
]
PASSWORD = "s3cret-pass"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        SMTP_USER="",
        SMTP_PASSWORD="",
        MAIL_REQUEST_TO="forex-desk@coop.test",
        SUPERADMIN_PASSWORD="",
        APP_TIMEOUT_SECONDS=5,
        AUTH_BACKEND="local",
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def world(store):
    """Reference data plus a branch maker and a head-office checker"""
    usd = store.seed("currencies", name="US Dollar", short_code="USD", is_deleted=False)
    eur = store.seed("currencies", name="Euro", short_code="EUR", is_deleted=False)
    etb = store.seed("currencies", name="Ethiopian Birr", short_code="ETB", is_deleted=False)
    country = store.seed("countries", name="Kenya", short_code="KE", visa_required=True, is_deleted=False)
    purpose = store.seed("travel_purposes", name="Business", is_deleted=False)
    customer_type = store.seed("customer_types", name="Individual", is_deleted=False)
    district = store.seed("districts", name="Addis Ababa", is_deleted=False)
    branch = store.seed("branches", name="Bole", branch_code="B001", email="bole@coop.test",
                        district_id=district, is_deleted=False)
    other_branch = store.seed("branches", name="Piassa", branch_code="B002", district_id=district, is_deleted=False)
    process = store.seed("processes", name="Operations", is_deleted=False)
    subprocess = store.seed("subprocesses", name="International Banking", process_id=process, is_deleted=False)
    department = store.seed("departments", name="Forex Desk", subprocess_id=subprocess, is_deleted=False)

    maker_role = store.seed("roles", name="maker", permissions=MAKER_PERMISSIONS, is_deleted=False)
    checker_role = store.seed("roles", name="checker", permissions=CHECKER_PERMISSIONS, is_deleted=False)

    maker_profile = store.seed("profiles", first_name="Abebe", middle_name="Kebede", last_name="Bekele",
                               email="abebe@coop.test", branch_id=branch, is_deleted=False)
    checker_profile = store.seed("profiles", first_name="Sara", middle_name="", last_name="Tesfaye",
                                 email="sara@coop.test", department_id=department, is_deleted=False)
    password_hash = get_password_hash(PASSWORD)
    maker_id = store.seed("users", username="abebe", password=password_hash, role_id=maker_role,
                          profile_id=maker_profile, permissions=[], status="active", is_deleted=False)
    checker_id = store.seed("users", username="sara", password=password_hash, role_id=checker_role,
                            profile_id=checker_profile, permissions=[], status="active", is_deleted=False)

    return SimpleNamespace(
        usd=usd, eur=eur, etb=etb, country=country, purpose=purpose, customer_type=customer_type,
        district=district, branch=branch, other_branch=other_branch, department=department,
        maker_role=maker_role, checker_role=checker_role,
        maker_profile=maker_profile, checker_profile=checker_profile,
        maker=CurrentUser(user_id=maker_id, username="abebe", role="maker",
                          permissions=MAKER_PERMISSIONS, branch_id=branch),
        checker=CurrentUser(user_id=checker_id, username="sara", role="checker",
                            permissions=CHECKER_PERMISSIONS, department_id=department),
    )


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def container(settings, store, outbox):
    container = Container(settings, store)
    container.request_service.email_service = outbox
    return container


@pytest.fixture
def service(container):
    return container.request_service


@pytest.fixture
def client(settings, store, outbox):
    app = create_app(settings, store)
    app.state.container.request_service.email_service = outbox
    return TestClient(app)
