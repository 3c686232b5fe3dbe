"""
Quotation HTTP endpoint tests.
"""

from datetime import timedelta
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from optiquote.core.security import create_access_token
from optiquote.models.base import utcnow
from optiquote.models.user import User, UserRole


def _payload(products, quantity=2, **overrides):
    payload = {
        "customer_name": "Jane Marie Doe",
        "customer_email": "jane@example.com",
        "customer_phone": "+33 6 12 34 56 78",
        "items": [
            {
                "product_id": products[0].id,
                "quantity": quantity,
                "specifications": {"lensType": "single vision", "color": "gold"},
            },
        ],
        "notes": "Please keep my old case",
    }
    payload.update(overrides)
    return payload


async def _create(client, products, headers=None, **overrides):
    response = await client.post(
        "/api/v1/quotations",
        json=_payload(products, **overrides),
        headers=headers or {},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_create_as_customer(client, customer, products, auth_headers):
    data = await _create(client, products, auth_headers(customer))

    assert data["user_id"] == customer.id
    assert data["status"] == "pending"
    assert data["effective_status"] == "pending"
    assert data["is_expired"] is False
    assert data["subtotal"] == "200.00"
    assert data["tax"] == "20.00"
    assert data["total"] == "220.00"
    assert data["items"][0]["product_name"] == "Aviator Frame"
    assert data["quotation_number"].startswith("QUO-")


@pytest.mark.asyncio
async def test_create_as_guest(client, products):
    data = await _create(client, products)

    assert data["user_id"] is None


@pytest.mark.asyncio
async def test_create_validation(client, products):
    response = await client.post("/api/v1/quotations", json=_payload(products, items=[]))

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_create_insufficient_inventory(client, products):
    response = await client.post("/api/v1/quotations", json=_payload(products, quantity=25))

    assert response.status_code == 400
    assert response.json()["error"] == "INSUFFICIENT_INVENTORY"


@pytest.mark.asyncio
async def test_create_unknown_product(client, products):
    payload = _payload(products)
    payload["items"][0]["product_id"] = 9999

    response = await client.post("/api/v1/quotations", json=payload)

    assert response.status_code == 404
    assert response.json()["error"] == "PRODUCT_NOT_FOUND"


@pytest.mark.asyncio
async def test_full_lifecycle(client, customer, staff, products, auth_headers):
    customer_headers = auth_headers(customer)
    staff_headers = auth_headers(staff)
    quotation = await _create(client, products, customer_headers)
    url = f"/api/v1/quotations/{quotation['id']}"

    response = await client.post(f"{url}/staff-reply", json={"message": "Frame size 52 or 54?"}, headers=staff_headers)
    assert response.status_code == 201
    assert len(response.json()["replies"]) == 1

    response = await client.put(f"{url}/approve", json={"staff_notes": "In stock"}, headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    response = await client.put(f"{url}/customer-approve", headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "customer_approved"

    response = await client.post(f"{url}/convert", headers=staff_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["quotation"]["status"] == "converted"
    assert body["quotation"]["converted_to_order_id"] == body["order"]["id"]
    assert body["order"]["total"] == quotation["total"]
    assert body["order"]["payment_method"] == "quotation"

    response = await client.get(f"/api/v1/orders/{body['order']['id']}", headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["order_number"].startswith("ORD-")

    response = await client.get("/api/v1/products/%d" % products[0].id)
    assert response.json()["stock_quantity"] == 8

    response = await client.get("/api/v1/notifications", headers=customer_headers)
    types = [n["type"] for n in response.json()["items"]]
    assert set(types) == {"staff_reply", "quotation_approved", "quotation_converted"}
    assert response.json()["unread"] == 3


@pytest.mark.asyncio
async def test_staff_endpoints_refuse_customers(client, customer, products, auth_headers):
    headers = auth_headers(customer)
    quotation = await _create(client, products, headers)

    response = await client.put(f"/api/v1/quotations/{quotation['id']}/approve", json={}, headers=headers)
    assert response.status_code == 403

    response = await client.get("/api/v1/quotations/all", headers=headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_authentication_required(client):
    response = await client.get("/api/v1/quotations")
    assert response.status_code == 401

    response = await client.get("/api/v1/quotations", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_first_token_provisions_local_account(client, customer, products, auth_headers, db_session):
    quotation = await _create(client, products, auth_headers(customer))
    token = create_access_token(4242, "staff", email="Optician@Shop.example", full_name="Sam Optician")
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.put(f"/api/v1/quotations/{quotation['id']}/approve", headers=headers)

    assert response.status_code == 200, response.text
    assert response.json()["approved_by"] == 4242
    user = (await db_session.execute(select(User).where(User.id == 4242))).scalar_one()
    assert user.role == UserRole.STAFF
    assert user.email == "optician@shop.example"
    assert user.full_name == "Sam Optician"

    response = await client.get("/api/v1/quotations/all", headers=headers)
    assert response.status_code == 200
    count = (await db_session.execute(select(func.count(User.id)).where(User.id == 4242))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_token_without_email_claim_provisions_customer(client, products, db_session):
    token = create_access_token(5151, "customer")

    data = await _create(client, products, {"Authorization": f"Bearer {token}"})

    assert data["user_id"] == 5151
    user = (await db_session.execute(select(User).where(User.id == 5151))).scalar_one()
    assert user.role == UserRole.CUSTOMER
    assert user.email == "user-5151@users.optiquote.invalid"


@pytest.mark.asyncio
async def test_unknown_role_claim_refused(client):
    token = create_access_token(6161, "superuser")

    response = await client.get("/api/v1/quotations", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_approve_without_body(client, customer, staff, products, auth_headers):
    quotation = await _create(client, products, auth_headers(customer))

    response = await client.put(
        f"/api/v1/quotations/{quotation['id']}/approve",
        headers=auth_headers(staff),
    )

    assert response.status_code == 200, response.text
    assert response.json()["status"] == "approved"
    assert response.json()["staff_notes"] is None


@pytest.mark.asyncio
async def test_owner_only_access(client, customer, other_customer, staff, products, auth_headers):
    quotation = await _create(client, products, auth_headers(customer))
    url = f"/api/v1/quotations/{quotation['id']}"

    response = await client.get(url, headers=auth_headers(other_customer))
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"

    response = await client.get(url, headers=auth_headers(staff))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_missing_quotation(client, staff, auth_headers):
    response = await client.get("/api/v1/quotations/4242", headers=auth_headers(staff))

    assert response.status_code == 404
    assert response.json()["error"] == "QUOTATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_approve_twice(client, customer, staff, products, auth_headers):
    quotation = await _create(client, products, auth_headers(customer))
    url = f"/api/v1/quotations/{quotation['id']}/approve"

    assert (await client.put(url, json={}, headers=auth_headers(staff))).status_code == 200
    response = await client.put(url, json={}, headers=auth_headers(staff))

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_STATUS_TRANSITION"


@pytest.mark.asyncio
async def test_customer_approve_expired(client, customer, staff, products, auth_headers, workflow, db_session):
    quotation = await _create(client, products, auth_headers(customer))
    url = f"/api/v1/quotations/{quotation['id']}"
    await client.put(f"{url}/approve", json={}, headers=auth_headers(staff))

    stored = await workflow.store.get(quotation["id"])
    stored.valid_until = utcnow() - timedelta(days=1)
    await db_session.flush()

    response = await client.put(f"{url}/customer-approve", headers=auth_headers(customer))
    assert response.status_code == 400
    assert response.json()["error"] == "QUOTATION_EXPIRED"

    data = (await client.get(url, headers=auth_headers(customer))).json()
    assert data["status"] == "approved"
    assert data["effective_status"] == "expired"
    assert data["is_expired"] is True


@pytest.mark.asyncio
async def test_expire_overdue_endpoint(client, customer, staff, products, auth_headers, workflow, db_session):
    quotation = await _create(client, products, auth_headers(customer))
    stored = await workflow.store.get(quotation["id"])
    stored.valid_until = utcnow() - timedelta(minutes=5)
    await db_session.flush()

    response = await client.post("/api/v1/quotations/expire-overdue", headers=auth_headers(staff))

    assert response.status_code == 200
    assert response.json() == {"expired": 1, "quotation_numbers": [quotation["quotation_number"]]}


@pytest.mark.asyncio
async def test_delete(client, customer, staff, products, auth_headers):
    headers = auth_headers(customer)
    pending = await _create(client, products, headers)
    approved = await _create(client, products, headers)
    await client.put(f"/api/v1/quotations/{approved['id']}/approve", json={}, headers=auth_headers(staff))

    response = await client.delete(f"/api/v1/quotations/{approved['id']}", headers=headers)
    assert response.status_code == 400
    assert (await client.get(f"/api/v1/quotations/{approved['id']}", headers=headers)).status_code == 200

    response = await client.delete(f"/api/v1/quotations/{pending['id']}", headers=headers)
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/quotations/{pending['id']}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_list_pagination(client, customer, staff, products, auth_headers):
    for _ in range(3):
        await _create(client, products, auth_headers(customer), quantity=1)

    response = await client.get("/api/v1/quotations?page=1&per_page=2", headers=auth_headers(customer))
    data = response.json()
    assert data["total"] == 3
    assert data["pages"] == 2
    assert len(data["items"]) == 2

    response = await client.get("/api/v1/quotations/all?status=pending", headers=auth_headers(staff))
    assert response.json()["total"] == 3


@pytest.mark.asyncio
async def test_reject_requires_reason(client, customer, staff, products, auth_headers):
    quotation = await _create(client, products, auth_headers(customer))

    response = await client.put(
        f"/api/v1/quotations/{quotation['id']}/reject",
        json={"reason": "no"},
        headers=auth_headers(staff),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_product_stock_adjustment(client, staff, products, auth_headers):
    url = f"/api/v1/products/{products[1].id}/stock"

    response = await client.post(url, json={"quantity": -4}, headers=auth_headers(staff))
    assert response.status_code == 200
    assert response.json()["stock_quantity"] == 6

    response = await client.post(url, json={"quantity": -7}, headers=auth_headers(staff))
    assert response.status_code == 400
    assert response.json()["error"] == "INSUFFICIENT_INVENTORY"
