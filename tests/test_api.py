from .conftest import BIZ

BURGERS = {
    "business_id": BIZ,
    "type": "dine_in",
    "order_items": [{
        "item_id": "burger",
        "quantity": 2,
        "options": [{"option_id": "opt-size", "variants": [{"variant_id": "var-large"}]}],
    }],
    "tip_amount": "2.00",
    "customer_name": "Ada",
}


async def create(client, **overrides) -> dict:
    response = await client.post("/api/orders", json={**BURGERS, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "healthy"


async def test_create_and_fetch_order(client):
    order = await create(client)

    assert order["order_number"] == "#0001"
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["subtotal"] == 23.0
    assert order["tax"] == 1.84
    assert order["grand_total"] == 26.84
    assert order["items"][0]["options"][0]["variants"][0]["variant_name"] == "Large"

    fetched = await client.get(f"/api/orders/{order['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["grand_total"] == 26.84

    by_number = await client.get(f"/api/businesses/{BIZ}/orders/0001")
    assert by_number.status_code == 200
    assert by_number.json()["id"] == order["id"]


async def test_engine_errors_map_to_status_codes(client):
    unavailable = await client.post("/api/orders", json={
        **BURGERS, "order_items": [{"item_id": "soup", "quantity": 1}],
    })
    assert unavailable.status_code == 400
    body = unavailable.json()
    assert body["success"] is False
    assert body["error"] == "validation"
    assert body["field"] == "order_items"
    assert "soup" in body["detail"]

    unknown_business = await client.post("/api/orders", json={**BURGERS, "business_id": "nope"})
    assert unknown_business.status_code == 404
    assert unknown_business.json()["error"] == "not_found"

    missing = await client.get("/api/orders/does-not-exist")
    assert missing.status_code == 404


async def test_request_validation(client):
    response = await client.post("/api/orders", json={**BURGERS, "order_items": []})
    assert response.status_code == 422

    response = await client.post("/api/orders", json={
        **BURGERS, "order_items": [{"item_id": "burger", "quantity": 0}],
    })
    assert response.status_code == 422


async def test_status_updates_and_cancel(client):
    order = await create(client)
    url = f"/api/orders/{order['id']}"

    confirmed = await client.patch(url, json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    illegal = await client.patch(url, json={"status": "completed"})
    assert illegal.status_code == 400
    assert illegal.json()["field"] == "status"

    cancelled = await client.post(f"{url}/cancel", json={"reason": "customer left"})
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert "Cancellation reason: customer left" in cancelled.json()["notes"]

    again = await client.post(f"{url}/cancel")
    assert again.status_code == 400


async def test_payments(client):
    order = await create(client)
    url = f"/api/orders/{order['id']}/payments"

    first = await client.post(url, json={"amount": "20.00", "payment_method": "cash"})
    assert first.status_code == 201
    assert first.json()["order_payment_status"] == "partial"
    assert first.json()["remaining_balance"] == 6.84
    assert first.json()["payment"]["amount"] == 20.0

    second = await client.post(url, json={"amount": "6.84", "payment_method": "card"})
    assert second.status_code == 201
    assert second.json()["order_payment_status"] == "paid"
    assert second.json()["remaining_balance"] == 0.0

    extra = await client.post(url, json={"amount": "0.01"})
    assert extra.status_code == 400
    assert extra.json()["field"] == "amount"

    fetched = (await client.get(f"/api/orders/{order['id']}")).json()
    assert len(fetched["payments"]) == 2
    assert fetched["payment_method"] == "card"


async def test_discount_update(client):
    order = await create(client)
    response = await client.patch(f"/api/orders/{order['id']}", json={"discount": "3.00"})
    assert response.status_code == 200
    assert response.json()["grand_total"] == 23.84


async def test_list_and_stats(client):
    await create(client)
    await create(client, customer_name="Grace", type="takeaway")

    listing = await client.get("/api/orders", params={"business_id": BIZ, "type": "takeaway"})
    assert listing.status_code == 200
    body = listing.json()
    assert body["total"] == 1
    assert body["orders"][0]["customer_name"] == "Grace"
    assert body["orders"][0]["item_count"] == 1

    stats = await client.get(f"/api/businesses/{BIZ}/stats")
    assert stats.status_code == 200
    assert stats.json()["total_orders"] == 2
    assert stats.json()["total_revenue"] == 53.68

    dashboard = await client.get(f"/api/businesses/{BIZ}/dashboard")
    assert dashboard.status_code == 200
    assert len(dashboard.json()["recent_orders"]) == 2
