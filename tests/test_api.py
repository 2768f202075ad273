import httpx
import pytest
import pytest_asyncio

import db
from api import create_app
from conftest import RecordingHook, make_payload
from errors import StoreError
from services import OrderService, StatusController

BASE = "/api/commandes"


@pytest_asyncio.fixture
async def client(store, notify_customer, notify_staff):
    app = create_app(OrderService(notify_customer, notify_staff), StatusController(notify_customer))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create(client, **overrides) -> str:
    response = await client.post(BASE, json=make_payload(**overrides))
    assert response.status_code == 201
    return response.json()["orderId"]


@pytest.mark.asyncio
async def test_create_order_returns_id_and_notification_flags(client, notify_staff):
    response = await client.post(BASE, json=make_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["notificationClient"] is True
    assert body["notificationFermiers"] is True
    assert notify_staff.calls[0].id == body["orderId"]


@pytest.mark.asyncio
async def test_create_order_reports_failed_notifications(store):
    app = create_app(
        OrderService(RecordingHook(result=False), RecordingHook(error=RuntimeError("boom"))),
        StatusController(RecordingHook()),
    )
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.post(BASE, json=make_payload())

    assert response.status_code == 201
    assert response.json()["notificationClient"] is False
    assert response.json()["notificationFermiers"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        make_payload(lineItems=[]),
        make_payload(customerPhone=""),
        make_payload(total=99),
    ],
)
async def test_create_order_rejects_bad_payload(client, payload):
    response = await client.post(BASE, json=payload)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert await db.get_all_orders() == []


@pytest.mark.asyncio
async def test_create_order_rejects_malformed_json(client):
    response = await client.post(
        BASE, content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_order_and_list(client):
    first = await _create(client, customerName="Anne")
    second = await _create(client, customerName="Bruno")

    response = await client.get(f"{BASE}/{first}")
    assert response.status_code == 200
    order = response.json()
    assert order["id"] == first
    assert order["customerName"] == "Anne"
    assert order["total"] == 12.0
    assert order["status"] == "pending"
    assert order["lineItems"][0] == {
        "productId": "a", "productName": "Oeufs", "quantity": 2, "unitPrice": 3.5,
    }

    listing = await client.get(BASE)
    assert listing.status_code == 200
    assert [o["id"] for o in listing.json()] == [second, first]


@pytest.mark.asyncio
async def test_get_unknown_order_is_404(client):
    response = await client.get(f"{BASE}/unknown")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Commande non trouvée"}


@pytest.mark.asyncio
async def test_patch_status(client, notify_customer):
    order_id = await _create(client)
    notify_customer.calls.clear()

    response = await client.patch(
        f"{BASE}/{order_id}/status", json={"status": "Livrée", "actorLabel": "Alice"}
    )

    assert response.status_code == 200
    assert response.json()["notificationEnvoyee"] is True
    assert len(notify_customer.calls) == 1
    order = (await client.get(f"{BASE}/{order_id}")).json()
    assert order["status"] == "delivered"
    assert order["handledBy"] == "Alice"


@pytest.mark.asyncio
async def test_patch_status_errors(client):
    order_id = await _create(client)

    missing = await client.patch(f"{BASE}/{order_id}/status", json={})
    assert missing.status_code == 400
    assert missing.json()["message"] == "Statut manquant"

    unknown_status = await client.patch(f"{BASE}/{order_id}/status", json={"status": "perdue"})
    assert unknown_status.status_code == 400

    unknown_order = await client.patch(f"{BASE}/nope/status", json={"status": "ready"})
    assert unknown_order.status_code == 404


@pytest.mark.asyncio
async def test_patch_comment(client):
    order_id = await _create(client)

    response = await client.patch(f"{BASE}/{order_id}/comment", json={"comment": "Porte bleue"})
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert (await client.get(f"{BASE}/{order_id}")).json()["comment"] == "Porte bleue"

    missing = await client.patch(f"{BASE}/nope/comment", json={"comment": "x"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_store_failure_is_500_without_details(client, monkeypatch):
    async def broken():
        raise StoreError()

    monkeypatch.setattr(db, "get_all_orders", broken)

    response = await client.get(BASE)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Erreur serveur"}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_create_order_with_huge_quantity_is_400(client):
    payload = make_payload(lineItems=[{"productId": "a", "quantity": 10**30, "unitPrice": 1}])
    payload.pop("total")

    response = await client.post(BASE, json=payload)

    assert response.status_code == 400
    assert await db.get_all_orders() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"status": "ready", "actorLabel": 42},
        {"status": 3},
        {"status": ["ready"]},
    ],
)
async def test_patch_status_with_wrong_types_is_400(client, notify_customer, body):
    order_id = await _create(client)
    notify_customer.calls.clear()

    response = await client.patch(f"{BASE}/{order_id}/status", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert notify_customer.calls == []
    assert (await client.get(f"{BASE}/{order_id}")).json()["status"] == "pending"


@pytest.mark.asyncio
@pytest.mark.parametrize("comment", [{"text": "x"}, ["x"], 12])
async def test_patch_comment_with_wrong_type_is_400(client, comment):
    order_id = await _create(client)

    response = await client.patch(f"{BASE}/{order_id}/comment", json={"comment": comment})

    assert response.status_code == 400
    assert (await client.get(f"{BASE}/{order_id}")).json()["comment"] == ""


@pytest.mark.asyncio
async def test_patch_comment_without_field_clears_it(client):
    order_id = await _create(client)
    await client.patch(f"{BASE}/{order_id}/comment", json={"comment": "Porte bleue"})

    response = await client.patch(f"{BASE}/{order_id}/comment", json={})

    assert response.status_code == 200
    assert (await client.get(f"{BASE}/{order_id}")).json()["comment"] == ""
