"""Service catalogue, booking lifecycle and bill generation."""
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.models import AuditLog, UserRole


async def _create_service(client, provider_headers, price: str = "750.00") -> dict:
    response = await client.post(
        "/provider/services",
        json={"name": "AC repair", "description": "Split units", "price": price},
        headers=provider_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _book(client, customer_headers, service_id: int, *, hours_ahead: int = 24):
    slot = (datetime.now(tz=UTC) + timedelta(hours=hours_ahead)).isoformat()
    return await client.post(
        "/customer/requests",
        json={"service_id": service_id, "time_slot": slot},
        headers=customer_headers,
    )


@pytest.mark.anyio
async def test_full_booking_lifecycle(client, db_session, provider_headers, customer_headers):
    service = await _create_service(client, provider_headers)

    booked = await _book(client, customer_headers, service["id"])
    assert booked.status_code == 201, booked.text
    request_id = booked.json()["id"]
    assert booked.json()["status"] == "pending"

    early_bill = await client.post(f"/provider/requests/{request_id}/bill", headers=provider_headers)
    assert early_bill.status_code == 409
    assert early_bill.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    accepted = await client.patch(f"/provider/requests/{request_id}/accept", headers=provider_headers)
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    bill = await client.post(
        f"/provider/requests/{request_id}/bill",
        json={"amount": "820.00"},
        headers=provider_headers,
    )
    assert bill.status_code == 201, bill.text
    assert bill.json()["status"] == "unpaid"
    assert Decimal(bill.json()["amount"]) == Decimal("820.00")

    again = await client.post(f"/provider/requests/{request_id}/bill", headers=provider_headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "DUPLICATE_OPERATION"

    completed = await client.patch(f"/provider/requests/{request_id}/complete", headers=provider_headers)
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"

    view = await client.get(f"/customer/requests/{request_id}", headers=customer_headers)
    assert view.status_code == 200
    assert view.json()["bill"]["id"] == bill.json()["id"]

    actions = set(
        db_session.scalars(
            select(AuditLog.action).where(AuditLog.entity == "ServiceRequest", AuditLog.entity_id == request_id)
        )
    )
    assert {"SERVICE_REQUEST_CREATED", "SERVICE_REQUEST_ACCEPTED", "SERVICE_REQUEST_COMPLETED"} <= actions


@pytest.mark.anyio
async def test_bill_defaults_to_service_price(client, provider_headers, customer_headers):
    service = await _create_service(client, provider_headers, price="640.00")
    request_id = (await _book(client, customer_headers, service["id"])).json()["id"]
    await client.patch(f"/provider/requests/{request_id}/accept", headers=provider_headers)

    bill = await client.post(f"/provider/requests/{request_id}/bill", headers=provider_headers)
    assert bill.status_code == 201
    assert Decimal(bill.json()["amount"]) == Decimal("640.00")


@pytest.mark.anyio
async def test_rejected_request_is_terminal(client, provider_headers, customer_headers):
    service = await _create_service(client, provider_headers)
    request_id = (await _book(client, customer_headers, service["id"])).json()["id"]

    rejected = await client.patch(f"/provider/requests/{request_id}/reject", headers=provider_headers)
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"

    accept = await client.patch(f"/provider/requests/{request_id}/accept", headers=provider_headers)
    assert accept.status_code == 409
    assert accept.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    reject_again = await client.patch(f"/provider/requests/{request_id}/reject", headers=provider_headers)
    assert reject_again.status_code == 409
    assert reject_again.json()["error"]["code"] == "DUPLICATE_OPERATION"


@pytest.mark.anyio
async def test_past_time_slot_is_rejected(client, provider_headers, customer_headers):
    service = await _create_service(client, provider_headers)

    response = await _book(client, customer_headers, service["id"], hours_ahead=-1)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.anyio
async def test_unknown_service(client, customer_headers):
    response = await _book(client, customer_headers, 424242)
    assert response.status_code == 404


@pytest.mark.anyio
async def test_other_provider_cannot_manage_request(
    client, provider_headers, customer_headers, make_user, headers_for
):
    service = await _create_service(client, provider_headers)
    request_id = (await _book(client, customer_headers, service["id"])).json()["id"]
    rival_headers = headers_for(make_user(UserRole.PROVIDER, name="rival"))

    response = await client.patch(f"/provider/requests/{request_id}/accept", headers=rival_headers)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.anyio
async def test_customer_cannot_view_someone_elses_request(
    client, provider_headers, customer_headers, make_user, headers_for
):
    service = await _create_service(client, provider_headers)
    request_id = (await _book(client, customer_headers, service["id"])).json()["id"]
    other_headers = headers_for(make_user(UserRole.CUSTOMER, name="other"))

    response = await client.get(f"/customer/requests/{request_id}", headers=other_headers)
    assert response.status_code == 403


@pytest.mark.anyio
async def test_invalid_service_price(client, provider_headers):
    response = await client.post(
        "/provider/services",
        json={"name": "Free lunch", "price": "0"},
        headers=provider_headers,
    )
    assert response.status_code == 422


@pytest.mark.anyio
async def test_provider_updates_own_service(client, db_session, provider_headers):
    service = await _create_service(client, provider_headers, price="500.00")

    response = await client.put(
        f"/provider/services/{service['id']}",
        json={"price": "550.00", "address": "12 MG Road, Bengaluru"},
        headers=provider_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert Decimal(body["price"]) == Decimal("550.00")
    assert body["address"] == "12 MG Road, Bengaluru"
    assert body["name"] == "AC repair"

    audit = db_session.scalars(
        select(AuditLog).where(AuditLog.action == "SERVICE_UPDATED", AuditLog.entity_id == service["id"])
    ).one()
    assert audit.data_json["price"] == "550.00"


@pytest.mark.anyio
async def test_service_update_rules(client, provider_headers, make_user, headers_for):
    service = await _create_service(client, provider_headers)

    zero_price = await client.put(
        f"/provider/services/{service['id']}", json={"price": "0"}, headers=provider_headers
    )
    assert zero_price.status_code == 422

    missing_parent = await client.put(
        f"/provider/services/{service['id']}", json={"parent_service_id": 424242}, headers=provider_headers
    )
    assert missing_parent.status_code == 404

    own_parent = await client.put(
        f"/provider/services/{service['id']}", json={"parent_service_id": service["id"]}, headers=provider_headers
    )
    assert own_parent.status_code == 400
    assert own_parent.json()["error"]["code"] == "VALIDATION_ERROR"

    rival_headers = headers_for(make_user(UserRole.PROVIDER, name="rival"))
    rival = await client.put(f"/provider/services/{service['id']}", json={"name": "Mine now"}, headers=rival_headers)
    assert rival.status_code == 403
    assert rival.json()["error"]["code"] == "FORBIDDEN"

    unknown = await client.put("/provider/services/424242", json={"name": "Ghost"}, headers=provider_headers)
    assert unknown.status_code == 404


@pytest.mark.anyio
async def test_service_details_list_parent_and_children(client, provider_headers, customer_headers):
    parent = await _create_service(client, provider_headers, price="900.00")
    child = await client.post(
        "/provider/services",
        json={"name": "Gas refill", "price": "350.00", "parent_service_id": parent["id"]},
        headers=provider_headers,
    )
    assert child.status_code == 201, child.text
    assert child.json()["parent_service_id"] == parent["id"]

    details = await client.get(f"/customer/services/info/{parent['id']}", headers=customer_headers)
    assert details.status_code == 200, details.text
    body = details.json()
    assert body["name"] == "AC repair"
    assert body["provider_name"].startswith("provider-")
    assert body["parent_service"] is None
    assert [c["id"] for c in body["child_services"]] == [child.json()["id"]]
    assert Decimal(body["child_services"][0]["price"]) == Decimal("350.00")

    child_details = await client.get(f"/customer/services/info/{child.json()['id']}", headers=customer_headers)
    assert child_details.json()["parent_service"]["id"] == parent["id"]
    assert child_details.json()["child_services"] == []

    missing = await client.get("/customer/services/info/424242", headers=customer_headers)
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_create_service_with_unknown_parent(client, provider_headers):
    response = await client.post(
        "/provider/services",
        json={"name": "Orphan", "price": "100.00", "parent_service_id": 424242},
        headers=provider_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Parent service not found."


@pytest.mark.anyio
async def test_provider_deletes_unbooked_service(client, db_session, provider_headers, customer_headers):
    parent = await _create_service(client, provider_headers)
    child = (
        await client.post(
            "/provider/services",
            json={"name": "Filter clean", "price": "150.00", "parent_service_id": parent["id"]},
            headers=provider_headers,
        )
    ).json()

    deleted = await client.delete(f"/provider/services/{parent['id']}", headers=provider_headers)
    assert deleted.status_code == 204

    gone = await client.get(f"/customer/services/info/{parent['id']}", headers=customer_headers)
    assert gone.status_code == 404
    orphan = await client.get(f"/customer/services/info/{child['id']}", headers=customer_headers)
    assert orphan.status_code == 200
    assert orphan.json()["parent_service"] is None


@pytest.mark.anyio
async def test_booked_or_foreign_service_cannot_be_deleted(
    client, provider_headers, customer_headers, make_user, headers_for
):
    service = await _create_service(client, provider_headers)

    rival_headers = headers_for(make_user(UserRole.PROVIDER, name="rival"))
    rival = await client.delete(f"/provider/services/{service['id']}", headers=rival_headers)
    assert rival.status_code == 403

    booked = await _book(client, customer_headers, service["id"])
    assert booked.status_code == 201

    response = await client.delete(f"/provider/services/{service['id']}", headers=provider_headers)
    assert response.status_code == 400
    assert response.json()["error"]["details"]["requests"] == 1

    still_there = await client.get(f"/customer/services/info/{service['id']}", headers=customer_headers)
    assert still_there.status_code == 200
