from conftest import register_and_login


ORDER = {
    "orderId": "ORD-1",
    "name": "Alice",
    "address": "1 Main St",
    "contact": "555-0100",
    "items": [{"productId": "p1", "quantity": 2}],
    "grandTotal": 100,
}


def place(client, headers, body=ORDER):
    r = client.post("/orders", json=body, headers=headers)
    assert r.status_code == 201, r.text
    assert r.json()["message"] == "Order placed successfully"
    return r.json()["order"]


def test_place_order_requires_token(client):
    r = client.post("/orders", json=ORDER)
    assert r.status_code == 401
    assert r.json()["detail"] == "No token, authorization denied"


def test_order_is_stored_verbatim_for_caller(client, auth_headers):
    order = place(client, auth_headers)
    assert order["orderId"] == "ORD-1"
    assert order["items"] == [{"productId": "p1", "quantity": 2}]
    assert order["grandTotal"] == 100
    assert order["orderDate"]

    me = client.get("/user/details", headers=auth_headers)
    assert me.status_code == 200

    mine = client.get("/orders/user", headers=auth_headers).json()
    assert mine == [order]
    assert order in client.get("/orders").json()


def test_cancel_removes_order_from_both_views(client, auth_headers):
    place(client, auth_headers)
    r = client.delete("/orders/ORD-1")
    assert r.status_code == 200
    assert r.json()["message"] == "Order canceled successfully"
    assert r.json()["order"]["orderId"] == "ORD-1"

    assert client.get("/orders/user", headers=auth_headers).json() == []
    assert client.get("/orders").json() == []

    again = client.delete("/orders/ORD-1")
    assert again.status_code == 404
    assert again.json()["detail"] == "Order not found"


def test_duplicate_order_id_is_a_conflict(client, auth_headers):
    place(client, auth_headers)
    r = client.post("/orders", json={**ORDER, "grandTotal": 5}, headers=auth_headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "Order already exists"

    orders = client.get("/orders").json()
    assert len(orders) == 1
    assert orders[0]["grandTotal"] == 100


def test_my_orders_only_lists_callers_orders(client, auth_headers):
    bob = register_and_login(client, email="bob@example.com", username="bob")
    place(client, auth_headers)
    place(client, bob, {**ORDER, "orderId": "ORD-2"})

    assert [o["orderId"] for o in client.get("/orders/user", headers=auth_headers).json()] == ["ORD-1"]
    assert [o["orderId"] for o in client.get("/orders/user", headers=bob).json()] == ["ORD-2"]
    # open policy: everyone sees everything
    assert [o["orderId"] for o in client.get("/orders").json()] == ["ORD-1", "ORD-2"]


def test_owner_policy_restricts_listing_and_cancel(owner_client):
    alice = register_and_login(owner_client)
    bob = register_and_login(owner_client, email="bob@example.com", username="bob")
    place(owner_client, alice)
    place(owner_client, bob, {**ORDER, "orderId": "ORD-2"})

    assert owner_client.get("/orders").status_code == 401
    assert [o["orderId"] for o in owner_client.get("/orders", headers=alice).json()] == ["ORD-1"]

    assert owner_client.delete("/orders/ORD-2").status_code == 401
    r = owner_client.delete("/orders/ORD-2", headers=alice)
    assert r.status_code == 403
    assert r.json()["detail"] == "Not authorized to cancel this order"

    assert owner_client.delete("/orders/ORD-2", headers=bob).status_code == 200


def test_concurrent_duplicate_order_id_persists_once(settings, tmp_path):
    import threading
    from concurrent.futures import ThreadPoolExecutor

    from fastapi.testclient import TestClient
    from storefront.main import create_app

    # file-backed database so every request gets its own connection and session
    app = create_app(settings._replace(database_url=f"sqlite:///{tmp_path / 'orders.db'}"))
    workers = 8
    barrier = threading.Barrier(workers)

    with TestClient(app) as c:
        headers = register_and_login(c)

        def submit(_):
            barrier.wait()
            return c.post("/orders", json={**ORDER, "orderId": "SAME"}, headers=headers).status_code

        with ThreadPoolExecutor(max_workers=workers) as pool:
            codes = sorted(pool.map(submit, range(workers)))

        assert codes == [201] + [409] * (workers - 1)
        assert [o["orderId"] for o in c.get("/orders").json()] == ["SAME"]
