"""Tests for the staff JSON API."""

from swiftship.errors import StoreUnavailable
from swiftship.services.shipments import ShipmentStore

NEW_SHIPMENT = {
    "sender_name": "Ada Sender",
    "sender_phone": "555-0100",
    "sender_address": "1 Origin Way",
    "sender_city": "Tucson",
    "receiver_name": "Ray Receiver",
    "receiver_phone": "555-0199",
    "receiver_address": "9 Destination Rd",
    "receiver_city": "Denver",
    "weight": "2.5",
}


class TestShipmentsApi:
    """Test creating, reading and moving shipments over JSON."""

    async def test_create(self, admin_client):
        response = await admin_client.post("/api/shipments", json=NEW_SHIPMENT)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "created"
        assert body["tracking_number"].startswith("SS")
        assert body["total_amount"] == "27.50"

    async def test_create_invalid(self, admin_client):
        response = await admin_client.post("/api/shipments", json=dict(NEW_SHIPMENT, weight=-1))
        assert response.status_code == 422

    async def test_transition(self, admin_client, make_shipment):
        shipment = await make_shipment()

        response = await admin_client.post(
            f"/api/shipments/{shipment.id}/transitions",
            json={"status": "in_transit", "location": "Phoenix, AZ"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["previous_status"] == "created"
        assert body["shipment"]["status"] == "in_transit"
        assert body["event"]["location"] == "Phoenix, AZ"
        assert body["event"]["description"] == "In Transit"

        events = await admin_client.get(f"/api/shipments/{shipment.id}/events")
        assert [e["status"] for e in events.json()] == ["created", "in_transit"]

    async def test_invalid_transition(self, admin_client, make_shipment):
        shipment = await make_shipment()
        await admin_client.post(
            f"/api/shipments/{shipment.id}/transitions", json={"status": "out_for_delivery"}
        )

        response = await admin_client.post(
            f"/api/shipments/{shipment.id}/transitions", json={"status": "created"}
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "invalid_transition"
        assert body["current"] == "out_for_delivery"
        assert body["next"] == "created"

    async def test_transition_unknown_shipment(self, admin_client):
        response = await admin_client.post(
            "/api/shipments/404/transitions", json={"status": "in_transit"}
        )
        assert response.status_code == 404

    async def test_store_unavailable(self, admin_client, make_shipment, monkeypatch):
        shipment = await make_shipment()

        async def _broken(self, *args, **kwargs):
            raise StoreUnavailable("database is locked")

        monkeypatch.setattr(ShipmentStore, "get_shipment", _broken)

        response = await admin_client.get(f"/api/shipments/{shipment.id}")
        assert response.status_code == 503
        assert response.json()["error"] == "store_unavailable"

    async def test_partial_update_and_retry(self, admin_client, make_shipment, monkeypatch):
        from swiftship.config import settings

        shipment = await make_shipment()
        monkeypatch.setattr(settings, "atomic_transitions", False)
        original_append = ShipmentStore.append_tracking_event

        async def _broken(self, *args, **kwargs):
            raise StoreUnavailable("database is locked")

        monkeypatch.setattr(ShipmentStore, "append_tracking_event", _broken)
        response = await admin_client.post(
            f"/api/shipments/{shipment.id}/transitions", json={"status": "in_transit"}
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "partial_update_failure"
        pending = body["pending_event"]
        assert pending["status"] == "in_transit"

        monkeypatch.setattr(ShipmentStore, "append_tracking_event", original_append)
        retry = await admin_client.post(f"/api/shipments/{shipment.id}/events", json=pending)
        assert retry.status_code == 201
        again = await admin_client.post(f"/api/shipments/{shipment.id}/events", json=pending)
        assert again.json()["id"] == retry.json()["id"]

        detail = await admin_client.get(f"/api/shipments/{shipment.id}")
        assert detail.json()["shipment"]["status"] == "in_transit"
        assert len(detail.json()["timeline"]) == 2

    async def test_event_for_a_status_the_shipment_is_not_at(self, admin_client, make_shipment):
        shipment = await make_shipment()

        response = await admin_client.post(
            f"/api/shipments/{shipment.id}/events",
            json={"status": "delivered", "created_at": "2026-03-10T15:00:00+00:00"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"
        detail = await admin_client.get(f"/api/shipments/{shipment.id}")
        assert detail.json()["shipment"]["status"] == "created"
        assert len(detail.json()["timeline"]) == 1

    async def test_update_and_delete(self, admin_client, make_shipment):
        shipment = await make_shipment()

        response = await admin_client.patch(
            f"/api/shipments/{shipment.id}", json={"payment_status": "paid"}
        )
        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"

        response = await admin_client.delete(f"/api/shipments/{shipment.id}")
        assert response.status_code == 204
        response = await admin_client.get(f"/api/shipments/{shipment.id}")
        assert response.status_code == 404

    async def test_list(self, admin_client, make_shipment):
        await make_shipment(sender_name="Grace Hopper")
        await make_shipment()

        response = await admin_client.get("/api/shipments", params={"q": "hopper"})
        assert response.status_code == 200
        assert [s["sender_name"] for s in response.json()] == ["Grace Hopper"]

    async def test_quote(self, admin_client):
        response = await admin_client.post(
            "/api/quote", json={"weight": "2", "service_level": "express"}
        )
        assert response.status_code == 200
        assert response.json()["total_amount"] == "37.50"
