def test_cart_requires_login(client):
    assert client.get("/api/cart").status_code == 401


def test_add_merges_lines_for_same_product(client, alice, catalog):
    pid = catalog["cream"]["id"]
    first = client.post("/api/cart", json={"product_id": pid, "quantity": 2}, headers=alice[1])
    assert first.status_code == 201
    second = client.post("/api/cart", json={"product_id": pid, "quantity": 3, "variant": "50ml"}, headers=alice[1])
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["quantity"] == 5

    cart = client.get("/api/cart", headers=alice[1]).json()
    assert len(cart) == 1
    assert cart[0]["variant"] == "50ml"
    assert cart[0]["product"]["name"] == "Hydrating Facial Cream"


def test_add_unknown_product(client, alice):
    res = client.post("/api/cart", json={"product_id": "ghost"}, headers=alice[1])
    assert res.status_code == 404


def test_add_rejects_non_positive_quantity(client, alice, catalog):
    res = client.post("/api/cart", json={"product_id": catalog["cream"]["id"], "quantity": 0}, headers=alice[1])
    assert res.status_code == 400


def test_update_cart_item(client, alice, catalog):
    item = client.post("/api/cart", json={"product_id": catalog["cream"]["id"]}, headers=alice[1]).json()
    res = client.put(f"/api/cart/{item['id']}", json={"quantity": 4}, headers=alice[1])
    assert res.status_code == 200
    assert res.json()["quantity"] == 4
    assert res.json()["product_id"] == catalog["cream"]["id"]


def test_delete_removes_line_from_cart(client, alice, catalog):
    cream = client.post("/api/cart", json={"product_id": catalog["cream"]["id"]}, headers=alice[1]).json()
    client.post("/api/cart", json={"product_id": catalog["lipstick"]["id"]}, headers=alice[1])

    assert client.delete(f"/api/cart/{cream['id']}", headers=alice[1]).status_code == 204
    cart = client.get("/api/cart", headers=alice[1]).json()
    assert [line["product_id"] for line in cart] == [catalog["lipstick"]["id"]]
    assert client.delete(f"/api/cart/{cream['id']}", headers=alice[1]).status_code == 404


def test_other_users_cart_lines_are_forbidden(client, alice, bob, catalog):
    item = client.post("/api/cart", json={"product_id": catalog["cream"]["id"]}, headers=alice[1]).json()
    assert client.put(f"/api/cart/{item['id']}", json={"quantity": 9}, headers=bob[1]).status_code == 403
    assert client.delete(f"/api/cart/{item['id']}", headers=bob[1]).status_code == 403
    assert client.get("/api/cart", headers=bob[1]).json() == []


def test_clear_cart(client, alice, bob, catalog):
    client.post("/api/cart", json={"product_id": catalog["cream"]["id"]}, headers=alice[1])
    client.post("/api/cart", json={"product_id": catalog["lipstick"]["id"]}, headers=alice[1])
    client.post("/api/cart", json={"product_id": catalog["cream"]["id"]}, headers=bob[1])

    assert client.delete("/api/cart", headers=alice[1]).status_code == 204
    assert client.get("/api/cart", headers=alice[1]).json() == []
    assert len(client.get("/api/cart", headers=bob[1]).json()) == 1


def test_deleting_product_drops_it_from_carts(client, alice, admin, catalog):
    client.post("/api/cart", json={"product_id": catalog["cream"]["id"]}, headers=alice[1])
    client.delete(f"/api/products/{catalog['cream']['id']}", headers=admin[1])
    assert client.get("/api/cart", headers=alice[1]).json() == []
