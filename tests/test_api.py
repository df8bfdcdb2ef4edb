from bson import ObjectId

from tests.conftest import PASSWORD


def login(client, username):
    response = client.post("/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}


def request_fields(world, **overrides):
    fields = {
        "applicant_name": "Abebe Bekele",
        "applicant_account_number": "1000123456789",
        "average_deposit": "150000",
        "total_fcy_generated": "25000.50",
        "current_fcy_performance": "12000",
        "fcy_requested_amount": "5000",
        "travel_purpose_id": str(world.purpose),
        "travel_country_id": str(world.country),
        "requesting_as_id": str(world.customer_type),
        "account_currency_id": str(world.etb),
        "fcy_requested_id": str(world.usd),
        "fcy_acceptance_mode": "cash",
        "accounts_to_deduct": ["1000123456789"],
    }
    fields.update(overrides)
    return fields


ATTACHMENTS = {
    "passport_attachment": ("passport.pdf", b"%PDF-1.4 passport", "application/pdf"),
    "ticket_attachment": ("ticket.pdf", b"%PDF-1.4 ticket", "application/pdf"),
}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["message"] == "healthy"
    assert response.headers.get("X-Trace-ID")


def test_trace_id_is_echoed(client):
    response = client.get("/health", headers={"X-Trace-ID": "trace-123"})

    assert response.headers["X-Trace-ID"] == "trace-123"


def test_requests_need_a_token(client, world):
    response = client.get("/requests")

    assert response.status_code == 401
    assert response.json() == {"message": "Not authenticated"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_bad_credentials_are_rejected(client, world):
    response = client.post("/login", json={"username": "abebe", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect username or password"


def test_countries_are_public(client, world):
    response = client.get("/countries")

    assert response.status_code == 200
    assert [country["name"] for country in response.json()["data"]] == ["Kenya"]


def test_missing_permission_is_forbidden(client, world):
    headers = login(client, "abebe")

    response = client.post(
        f"/validaterequest/{ObjectId()}",
        json={"validated_account_currency_id": str(world.etb),
              "validated_average_deposit": 1, "validated_current_balance": 1},
        headers=headers,
    )

    assert response.status_code == 403


def test_submit_request_over_multipart(client, world, outbox):
    headers = login(client, "abebe")

    response = client.post("/request", data=request_fields(world), files=ATTACHMENTS, headers=headers)

    assert response.status_code == 201
    body = response.json()["data"]
    assert body["request_status"] == "New"
    assert body["request_code"].startswith("REQ-")
    assert body["branch"]["name"] == "Bole"
    assert body["passport"]["url"].startswith("/uploads/")
    assert "password" not in body["requester"]
    assert outbox.kinds() == ["submitted"]

    fetched = client.get(f"/request/{body['_id']}", headers=login(client, "sara"))
    assert fetched.status_code == 200
    assert fetched.json()["data"]["request_code"] == body["request_code"]


def test_submit_without_accounts_names_the_field(client, world):
    headers = login(client, "abebe")
    fields = request_fields(world)
    del fields["accounts_to_deduct"]

    response = client.post("/request", data=fields, files=ATTACHMENTS, headers=headers)

    assert response.status_code == 400
    assert "accounts_to_deduct" in response.json()["message"]


def test_validate_unknown_request(client, world):
    headers = login(client, "sara")

    response = client.post(
        f"/validaterequest/{ObjectId()}",
        json={"validated_account_currency_id": str(world.etb),
              "validated_average_deposit": 1000, "validated_current_balance": 500},
        headers=headers,
    )

    assert response.status_code == 404
    assert response.json()["message"] == "the request id doesn't exist"


def test_malformed_id_is_echoed(client, world):
    headers = login(client, "sara")

    response = client.get("/request/xyz", headers=headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid ID: xyz"


def test_negative_validation_figures_fail_schema(client, world):
    headers = login(client, "sara")

    response = client.post(
        f"/validaterequest/{ObjectId()}",
        json={"validated_account_currency_id": str(world.etb),
              "validated_average_deposit": -1, "validated_current_balance": 500},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("validated_average_deposit")


def test_empty_request_list_is_not_found(client, world):
    response = client.get("/requests", headers=login(client, "sara"))

    assert response.status_code == 404
    assert response.json()["message"] == "no documents"


def test_logout_revokes_the_token(client, world):
    headers = login(client, "sara")

    assert client.post("/logout", headers=headers).status_code == 200
    assert client.get("/me", headers=headers).status_code == 401


def test_public_registration_cannot_grant_permissions(client, world):
    response = client.post("/register", json={
        "username": "mallory",
        "password": "long-enough",
        "role_id": str(world.maker_role),
        "first_name": "Mal",
        "last_name": "Lory",
        "email": "mallory@coopbank.et",
        "branch_id": str(world.branch),
        "permissions": ["request:validate", "request:approve"],
    })
    assert response.status_code == 201
    assert response.json()["data"]["permissions"] == []

    login = client.post("/login", json={"username": "mallory", "password": "long-enough"})
    permissions = login.json()["data"]["user"]["permissions"]
    assert "request:validate" not in permissions
    assert "request:approve" not in permissions

    headers = {"Authorization": f"Bearer {login.json()['data']['access_token']}"}
    response = client.post(
        f"/validaterequest/{ObjectId()}",
        json={"validated_account_currency_id": str(world.etb),
              "validated_average_deposit": 1, "validated_current_balance": 1},
        headers=headers,
    )
    assert response.status_code == 403


def test_user_update_needs_the_user_update_permission(client, world):
    headers = login(client, "sara")

    response = client.put(f"/users/{world.maker.user_id}", json={"status": "inactive"}, headers=headers)

    assert response.status_code == 403
