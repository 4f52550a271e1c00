"""HTTP surface: guards, error bodies and the main resource flows."""

import pytest

ITEMS = [
    {"description": "Design", "quantity": 2, "unit_price": 500, "total": 1000},
    {"description": "Hosting", "quantity": 1, "unit_price": 5, "total": 5},
]


def _create_client(client, headers, name="Jane Doe"):
    response = client.post("/clients", json={"name": name, "company": "Acme"}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _create_offer(client, headers, client_id):
    response = client.post(
        "/offers",
        json={"client_id": client_id, "title": "Website", "items": ITEMS, "tax_rate": 20},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


# ── Guards ────────────────────────────────────────────────────────────────────

def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_missing_token_is_401_with_bearer_challenge(client):
    response = client.get("/clients")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_garbage_token_is_401(client):
    response = client.get("/clients", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_session_without_org_uses_default_org(client, token_for, admin_headers):
    created = _create_client(client, admin_headers)
    headers = token_for("USER", org_id=None, user_id="u-x", email="x@acme.com")
    response = client.get(f"/clients/{created['id']}", headers=headers)
    assert response.status_code == 200


def test_user_can_read_but_not_mutate_clients(client, admin_headers, user_headers):
    created = _create_client(client, admin_headers)

    assert client.get("/clients", headers=user_headers).status_code == 200
    response = client.post("/clients", json={"name": "X"}, headers=user_headers)
    assert response.status_code == 403
    assert response.json() == {"detail": "Admin privileges required", "code": "FORBIDDEN"}
    assert client.patch(f"/clients/{created['id']}", json={"name": "Y"}, headers=user_headers).status_code == 403
    assert client.delete(f"/clients/{created['id']}", headers=user_headers).status_code == 403


def test_unknown_role_is_treated_as_user(client, token_for):
    headers = token_for("superadmin", user_id="u-r", email="r@acme.com")
    assert client.post("/clients", json={"name": "X"}, headers=headers).status_code == 403


# ── Tenant isolation ──────────────────────────────────────────────────────────

def test_other_org_gets_404_for_my_rows(client, admin_headers, other_org_headers):
    created = _create_client(client, admin_headers)

    response = client.get(f"/clients/{created['id']}", headers=other_org_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Client not found", "code": "NOT_FOUND"}
    assert client.patch(
        f"/clients/{created['id']}", json={"name": "Stolen"}, headers=other_org_headers
    ).status_code == 404
    assert client.delete(f"/clients/{created['id']}", headers=other_org_headers).status_code == 404
    assert client.get("/clients", headers=other_org_headers).json() == []


@pytest.mark.parametrize("key", ["org_id", "orgId", "organization_id", "tenantId"])
def test_payload_cannot_carry_org(client, admin_headers, key):
    response = client.post("/clients", json={"name": "X", key: "org-globex"}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_import_rows(client, admin_headers, other_org_headers):
    response = client.post(
        "/clients/import",
        json={"rows": [{"name": "A", "tags": "x|y"}, {"name": "B", "org_id": "org-globex"}, {"name": "C"}]},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["created"] == 2
    assert body["failed"] == 1
    assert body["errors"][0]["row"] == 1
    assert client.get("/clients", headers=other_org_headers).json() == []


# ── Templates ─────────────────────────────────────────────────────────────────

def test_template_slug_conflict_is_409(client, admin_headers):
    body = {"title": "Web", "slug": "web"}
    assert client.post("/templates", json=body, headers=admin_headers).status_code == 201
    response = client.post("/templates", json=body, headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "SLUG_CONFLICT"


def test_template_slug_format_is_validated(client, admin_headers):
    response = client.post("/templates", json={"title": "Web", "slug": "Not A Slug"}, headers=admin_headers)
    assert response.status_code == 422


def test_template_duplicate_and_lookup_by_slug(client, admin_headers, user_headers):
    created = client.post(
        "/templates", json={"title": "Website Redesign", "slug": "web"}, headers=admin_headers
    ).json()
    copy = client.post(f"/templates/{created['id']}/duplicate", headers=admin_headers)
    assert copy.status_code == 201
    assert copy.json()["slug"] == "website-redesign-copy"

    found = client.get("/templates/slug/website-redesign-copy", headers=user_headers)
    assert found.status_code == 200
    assert client.get("/templates/slug/missing", headers=user_headers).status_code == 404


# ── Offers ────────────────────────────────────────────────────────────────────

def test_offer_lifecycle_over_http(client, admin_headers, user_headers):
    customer = _create_client(client, admin_headers)
    offer = _create_offer(client, user_headers, customer["id"])
    assert offer["status"] == "draft"
    assert (offer["subtotal"], offer["tax_amount"], offer["total"]) == (1005, 201, 1206)

    edited = client.patch(f"/offers/{offer['id']}", json={"tax_rate": 10}, headers=user_headers)
    assert edited.status_code == 200
    assert edited.json()["total"] == 1106

    # Users draft; only admins move the status.
    response = client.post(f"/offers/{offer['id']}/status", json={"status": "sent"}, headers=user_headers)
    assert response.status_code == 403

    response = client.post(f"/offers/{offer['id']}/status", json={"status": "sent"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "sent"

    response = client.patch(f"/offers/{offer['id']}", json={"title": "Late edit"}, headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"

    response = client.post(f"/offers/{offer['id']}/status", json={"status": "draft"}, headers=admin_headers)
    assert response.status_code == 409

    response = client.post(f"/offers/{offer['id']}/status", json={"status": "archived"}, headers=admin_headers)
    assert response.status_code == 409

    response = client.post(f"/offers/{offer['id']}/status", json={"status": "accepted"}, headers=admin_headers)
    assert response.json()["status"] == "accepted"


def test_offer_totals_are_not_accepted_from_callers(client, admin_headers):
    customer = _create_client(client, admin_headers)
    response = client.post(
        "/offers",
        json={"client_id": customer["id"], "title": "X", "items": [], "total": 99},
        headers=admin_headers,
    )
    assert response.status_code == 422


def test_offer_tax_rate_with_three_decimals_is_rejected(client, admin_headers):
    customer = _create_client(client, admin_headers)
    body = {
        "client_id": customer["id"],
        "title": "X",
        "items": [{"quantity": 1, "unit_price": 100000, "total": 100000}],
        "tax_rate": 33.335,
    }
    response = client.post("/offers", json=body, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    body["tax_rate"] = 33.34
    created = client.post("/offers", json=body, headers=admin_headers).json()
    assert (created["tax_amount"], created["total"]) == (33340, 133340)

    response = client.patch(f"/offers/{created['id']}", json={"tax_rate": 0.125}, headers=admin_headers)
    assert response.status_code == 422


def test_offer_with_foreign_client_is_rejected(client, admin_headers, other_org_headers):
    theirs = _create_client(client, other_org_headers)
    response = client.post(
        "/offers",
        json={"client_id": theirs["id"], "title": "X", "items": ITEMS},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_offer_list_and_delete(client, admin_headers, user_headers, other_org_headers):
    customer = _create_client(client, admin_headers)
    offer = _create_offer(client, admin_headers, customer["id"])

    listed = client.get("/offers", headers=user_headers).json()
    assert listed["total"] == 1
    assert client.get("/offers", headers=other_org_headers).json()["total"] == 0

    assert client.delete(f"/offers/{offer['id']}", headers=user_headers).status_code == 403
    assert client.delete(f"/offers/{offer['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/offers/{offer['id']}", headers=admin_headers).status_code == 404


def test_client_with_offers_cannot_be_deleted(client, admin_headers):
    customer = _create_client(client, admin_headers)
    _create_offer(client, admin_headers, customer["id"])
    response = client.delete(f"/clients/{customer['id']}", headers=admin_headers)
    assert response.status_code == 422


def test_offer_pdf(client, admin_headers, other_org_headers, pdf_renderer):
    customer = _create_client(client, admin_headers)
    offer = _create_offer(client, admin_headers, customer["id"])

    response = client.get(f"/offers/{offer['id']}/pdf", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    rendered_client, fields = pdf_renderer.calls[0]
    assert rendered_client["company"] == "Acme"
    assert fields["total"] == 1206

    assert client.get(f"/offers/{offer['id']}/pdf", headers=other_org_headers).status_code == 404


def test_offer_pdf_without_renderer_is_503(client_factory, admin_headers):
    client = client_factory()
    customer = _create_client(client, admin_headers)
    offer = _create_offer(client, admin_headers, customer["id"])
    response = client.get(f"/offers/{offer['id']}/pdf", headers=admin_headers)
    assert response.status_code == 503


def test_rate_limited_routes(client_factory, denying_limiter, admin_headers):
    limiter = denying_limiter({"offers:create"}, retry_after=7)
    client = client_factory(rate_limiter=limiter)
    customer = _create_client(client, admin_headers)

    response = client.post(
        "/offers",
        json={"client_id": customer["id"], "title": "X", "items": ITEMS},
        headers=admin_headers,
    )
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "7"
    assert response.json()["code"] == "RATE_LIMITED"

    assert client.get("/offers", headers=admin_headers).status_code == 200
    assert limiter.seen == ["offers:create", "offers:list"]


def test_dashboard_summary(client, admin_headers, user_headers):
    customer = _create_client(client, admin_headers)
    _create_offer(client, admin_headers, customer["id"])
    summary = client.get("/dashboard/summary", headers=user_headers).json()
    assert summary["clients_count"] == 1
    assert summary["offers_count"] == 1
    assert summary["recent_offers"][0]["client_name"] == "Acme"


# ── Allowlist and registration ────────────────────────────────────────────────

def test_allowlist_management_requires_admin(client, user_headers):
    assert client.get("/settings/admin-allowed-emails", headers=user_headers).status_code == 403
    response = client.post(
        "/settings/admin-allowed-emails", json={"email": "x@acme.com"}, headers=user_headers
    )
    assert response.status_code == 403


def test_register_refuses_emails_not_allowlisted(client):
    response = client.post(
        "/register", json={"email": "stranger@acme.com", "password": "correct-horse"}
    )
    assert response.status_code == 403
    assert response.json()["code"] == "EMAIL_NOT_ALLOWED"


def test_register_cannot_choose_org(client):
    response = client.post(
        "/register",
        json={"email": "boss@acme.com", "password": "correct-horse", "org_id": "org-globex"},
    )
    assert response.status_code == 422


def test_bootstrap_admin_registration_flow(client, admin_headers):
    response = client.post(
        "/settings/admin-allowed-emails", json={"email": " Boss@Acme.com "}, headers=admin_headers
    )
    assert response.status_code == 201, response.text
    entry = response.json()
    assert entry["email"] == "boss@acme.com"
    assert entry["used_at"] is None

    duplicate = client.post(
        "/settings/admin-allowed-emails", json={"email": "boss@acme.com"}, headers=admin_headers
    )
    assert duplicate.status_code == 422

    response = client.post(
        "/register", json={"email": "boss@acme.com", "password": "correct-horse"}
    )
    assert response.status_code == 201, response.text
    user = response.json()
    assert user["role"] == "ADMIN"
    assert user["org_id"] == "org-acme"
    assert user["display_name"] == "boss"

    entries = client.get("/settings/admin-allowed-emails", headers=admin_headers).json()["items"]
    assert entries[0]["used_at"] is not None

    again = client.post("/register", json={"email": "boss@acme.com", "password": "correct-horse"})
    assert again.status_code == 409

    bad_login = client.post("/login", data={"username": "boss@acme.com", "password": "wrong-pass"})
    assert bad_login.status_code == 401

    login = client.post("/login", data={"username": "Boss@acme.com", "password": "correct-horse"})
    assert login.status_code == 200, login.text
    token = login.json()["access_token"]
    me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "boss@acme.com"

    # The new admin can act in the organisation right away.
    assert client.post(
        "/clients", json={"name": "Z"}, headers={"Authorization": f"Bearer {token}"}
    ).status_code == 201


def test_delete_allowlist_entry(client, admin_headers, other_org_headers):
    entry = client.post(
        "/settings/admin-allowed-emails", json={"email": "boss@acme.com"}, headers=admin_headers
    ).json()
    assert client.delete(
        f"/settings/admin-allowed-emails/{entry['id']}", headers=other_org_headers
    ).status_code == 404
    assert client.delete(
        f"/settings/admin-allowed-emails/{entry['id']}", headers=admin_headers
    ).status_code == 204
