"""HTTP surface: routing, status codes and error rendering."""
import uuid
from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from wms_optimizer.database import get_db_with_tenant
from wms_optimizer.main import app


@pytest.fixture
async def client(session_factory):
    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_with_tenant] = override_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def stocked(seed, warehouse):
    product = await seed.product("P1", unit_price="3.00")
    face = await seed.location(warehouse, "A-01-01", capacity=100, current_quantity=8, is_picking_face=True)
    bulk = await seed.location(warehouse, "C-01-01", capacity=1000, current_quantity=200, is_bulk_storage=True)
    await seed.stock(face, product, 8)
    await seed.stock(bulk, product, 200)
    return {"warehouse": warehouse, "product": product, "face": face, "bulk": bulk}


class TestService:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"

    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"


class TestLocationEndpoints:

    async def test_optimal_locations(self, client, seed, warehouse):
        await seed.location(warehouse, "B-01-01")
        await seed.location(warehouse, "A-01-01")

        response = await client.post(
            "/api/v1/wms/locations/optimal",
            json={"warehouse_id": str(warehouse.id), "item": {"sku": "S1", "quantity": 10}},
        )

        assert response.status_code == 200
        assert [s["location"]["code"] for s in response.json()] == ["A-01-01", "B-01-01"]

    async def test_no_suitable_location(self, client, seed, warehouse):
        await seed.location(warehouse, "A-01-01", capacity=5)

        response = await client.post(
            "/api/v1/wms/locations/optimal",
            json={"warehouse_id": str(warehouse.id), "item": {"sku": "S1", "quantity": 10}},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INSUFFICIENT_CAPACITY"
        assert body["details"]["constraints"]["quantity"] == 10

    async def test_putaway(self, client, seed, warehouse):
        await seed.product("S1")
        location = await seed.location(warehouse, "A-01-01")

        response = await client.post(
            "/api/v1/wms/locations/putaway",
            json={
                "warehouse_id": str(warehouse.id),
                "location_id": str(location.id),
                "item": {"sku": "S1", "quantity": 30},
            },
        )

        assert response.status_code == 201
        assert response.json()["location_quantity_after"] == 30

    async def test_unknown_warehouse(self, client):
        response = await client.post(
            "/api/v1/wms/locations/optimal",
            json={"warehouse_id": str(uuid.uuid4()), "item": {"sku": "S1", "quantity": 1}},
        )
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    async def test_request_validation(self, client, warehouse):
        response = await client.post(
            "/api/v1/wms/locations/optimal",
            json={"warehouse_id": str(warehouse.id), "item": {"sku": "S1", "quantity": 0}},
        )
        assert response.status_code == 422

    async def test_abc_inverted_period(self, client, warehouse):
        today = date.today()
        response = await client.post(
            "/api/v1/wms/abc-analysis",
            json={
                "warehouse_id": str(warehouse.id),
                "period_start": today.isoformat(),
                "period_end": (today - timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "DEGENERATE_INPUT"


class TestPlanningEndpoints:

    async def test_replenishment_plan_and_execute(self, client, stocked):
        warehouse_id = str(stocked["warehouse"].id)

        response = await client.post("/api/v1/wms/replenishment/tasks", json={"warehouse_id": warehouse_id})
        assert response.status_code == 200
        [task] = response.json()
        assert (task["priority"], task["quantity"]) == ("urgent", 82)

        response = await client.post(
            "/api/v1/wms/replenishment/execute", json={"warehouse_id": warehouse_id, "task": task}
        )
        assert response.status_code == 200
        assert response.json()["destination_quantity_after"] == 90

    async def test_slotting_recommendations(self, client, stocked):
        response = await client.post(
            "/api/v1/wms/slotting/recommendations",
            json={"warehouse_id": str(stocked["warehouse"].id), "options": {"min_impact_threshold": 10}},
        )
        assert response.status_code == 200
        assert isinstance(response.json(), list)


class TestPickingEndpoints:

    async def test_order_flow(self, client, stocked):
        product_id = str(stocked["product"].id)
        face_id = str(stocked["face"].id)

        response = await client.post(
            "/api/v1/picking/orders",
            json={
                "warehouse_id": str(stocked["warehouse"].id),
                "items": [{"product_id": product_id, "quantity": 5, "preferred_location_id": face_id}],
                "priority": "high",
            },
        )
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "pending"
        assert order["items"][0]["allocated_locations"][0]["location_id"] == face_id
        base = f"/api/v1/picking/orders/{order['id']}"

        assert (await client.post(f"{base}/assign", json={"picker_id": "picker-1"})).json()["status"] == "assigned"
        assert (await client.post(f"{base}/start")).json()["status"] == "in_progress"

        response = await client.post(
            f"{base}/pick", json={"product_id": product_id, "location_id": face_id, "quantity": 5}
        )
        assert response.status_code == 200
        assert response.json()["picked_quantity"] == 5

        response = await client.post(f"{base}/optimize-route")
        assert response.status_code == 200
        assert response.json()["stops"][0]["location_code"] == "A-01-01"

        response = await client.post(f"{base}/complete")
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        response = await client.post(f"{base}/verify", json={"verified_by": "qa-1"})
        assert response.json()["verified_by"] == "qa-1"

        response = await client.get(f"{base}")
        assert response.json()["picking_metadata"]["completion"]["accuracy_rate"] == 100.0

        response = await client.get("/api/v1/picking/orders", params={"status": "completed"})
        assert [o["id"] for o in response.json()] == [order["id"]]

        response = await client.get(
            "/api/v1/picking/metrics", params={"warehouse_id": str(stocked["warehouse"].id)}
        )
        assert response.json()["completed_orders"] == 1

    async def test_insufficient_stock(self, client, stocked):
        response = await client.post(
            "/api/v1/picking/orders",
            json={
                "warehouse_id": str(stocked["warehouse"].id),
                "items": [{"product_id": str(stocked["product"].id), "quantity": 500}],
            },
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "INSUFFICIENT_STOCK"
        assert (body["details"]["available"], body["details"]["requested"]) == (208, 500)

    async def test_invalid_transition(self, client, stocked):
        response = await client.post(
            "/api/v1/picking/orders",
            json={
                "warehouse_id": str(stocked["warehouse"].id),
                "items": [{"product_id": str(stocked["product"].id), "quantity": 1}],
            },
        )
        response = await client.post(f"/api/v1/picking/orders/{response.json()['id']}/start")
        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATE"

    async def test_wave(self, client, stocked):
        ids = []
        for _ in range(2):
            response = await client.post(
                "/api/v1/picking/orders",
                json={
                    "warehouse_id": str(stocked["warehouse"].id),
                    "items": [{"product_id": str(stocked["product"].id), "quantity": 2}],
                },
            )
            ids.append(response.json()["id"])

        response = await client.post(
            "/api/v1/picking/waves",
            json={"warehouse_id": str(stocked["warehouse"].id), "picking_ids": ids},
        )
        assert response.status_code == 201
        assert response.json()["total_orders"] == 2

    async def test_unknown_order(self, client):
        response = await client.get(f"/api/v1/picking/orders/{uuid.uuid4()}")
        assert response.status_code == 404
