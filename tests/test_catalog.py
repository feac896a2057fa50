def test_categories_are_public_but_admin_managed(client, alice, admin, catalog):
    res = client.get("/api/categories")
    assert res.status_code == 200
    assert [c["name"] for c in res.json()] == ["Skincare", "Makeup"]

    payload = {"name": "Fragrances", "description": "For all occasions"}
    assert client.post("/api/categories", json=payload).status_code == 401
    assert client.post("/api/categories", json=payload, headers=alice[1]).status_code == 403

    res = client.post("/api/categories", json=payload, headers=admin[1])
    assert res.status_code == 201
    created = res.json()
    assert client.get(f"/api/categories/{created['id']}").json()["name"] == "Fragrances"


def test_category_update_and_delete(client, admin, catalog):
    cat_id = catalog["skincare"]["id"]
    res = client.put(f"/api/categories/{cat_id}", json={"description": None}, headers=admin[1])
    assert res.status_code == 200
    assert res.json()["description"] is None
    assert res.json()["name"] == "Skincare"

    # still referenced by a product
    assert client.delete(f"/api/categories/{cat_id}", headers=admin[1]).status_code == 409

    empty = client.post("/api/categories", json={"name": "Hair Care"}, headers=admin[1]).json()
    assert client.delete(f"/api/categories/{empty['id']}", headers=admin[1]).status_code == 204
    assert client.get(f"/api/categories/{empty['id']}").status_code == 404


def test_category_names_are_unique(client, admin, catalog):
    res = client.post("/api/categories", json={"name": "Makeup"}, headers=admin[1])
    assert res.status_code == 409


def test_unknown_ids_are_404(client, admin):
    assert client.get("/api/categories/does-not-exist").status_code == 404
    assert client.get("/api/products/507f1f77bcf86cd799439011").status_code == 404
    assert client.put("/api/products/nope", json={"price": 1}, headers=admin[1]).status_code == 404
    assert client.delete("/api/products/nope", headers=admin[1]).status_code == 404


def test_product_filters(client, catalog):
    def names(**params):
        return sorted(p["name"] for p in client.get("/api/products", params=params).json())

    assert names() == ["Creamy Matte Lipstick", "Hydrating Facial Cream"]
    assert names(category=catalog["makeup"]["id"]) == ["Creamy Matte Lipstick"]
    assert names(featured="true") == ["Hydrating Facial Cream"]
    assert names(new="true") == ["Hydrating Facial Cream"]
    assert names(bestseller="true") == ["Creamy Matte Lipstick"]
    assert names(featured="true", bestseller="true") == []
    assert names(q="matte") == ["Creamy Matte Lipstick"]
    assert names(q="HYDRATION") == ["Hydrating Facial Cream"]


def test_admin_product_lifecycle(client, alice, admin, catalog):
    payload = {
        "name": "Argan Hair Oil",
        "description": "Nourishing oil",
        "price": 18.0,
        "image": "oil.jpg",
        "category_id": catalog["skincare"]["id"],
        "stock": 7,
    }
    assert client.post("/api/products", json=payload, headers=alice[1]).status_code == 403

    res = client.post("/api/products", json=payload, headers=admin[1])
    assert res.status_code == 201
    product = res.json()
    assert product["featured"] is False
    assert product["sale_price"] is None

    res = client.put(f"/api/products/{product['id']}", json={"sale_price": 15.0, "stock": 3}, headers=admin[1])
    assert res.status_code == 200
    assert res.json()["sale_price"] == 15.0
    assert res.json()["name"] == "Argan Hair Oil"

    res = client.put(f"/api/products/{product['id']}", json={"sale_price": None}, headers=admin[1])
    assert res.json()["sale_price"] is None

    assert client.delete(f"/api/products/{product['id']}", headers=admin[1]).status_code == 204
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_requires_existing_category(client, admin):
    payload = {"name": "Orphan", "description": "x", "price": 1.0, "image": "x.jpg", "category_id": "missing"}
    res = client.post("/api/products", json=payload, headers=admin[1])
    assert res.status_code == 400
    assert res.json()["detail"] == "Category not found"


def test_product_validation(client, admin, catalog):
    payload = {"name": "Bad", "description": "x", "price": -1, "image": "x.jpg",
               "category_id": catalog["skincare"]["id"]}
    assert client.post("/api/products", json=payload, headers=admin[1]).status_code == 400


def test_reviews(client, alice, bob, catalog):
    pid = catalog["cream"]["id"]
    review = {"product_id": pid, "rating": 5, "title": "Love it", "comment": "So soft"}
    assert client.post("/api/reviews", json=review).status_code == 401

    res = client.post("/api/reviews", json=review, headers=alice[1])
    assert res.status_code == 201
    assert res.json()["user_id"] == alice[0]["id"]

    client.post("/api/reviews", json={**review, "rating": 2, "title": "Meh"}, headers=bob[1])

    reviews = client.get(f"/api/products/{pid}/reviews").json()
    assert [r["title"] for r in reviews] == ["Meh", "Love it"]

    detail = client.get(f"/api/products/{pid}").json()
    assert detail["rating"] == 3.5
    assert detail["reviews_count"] == 2

    assert client.get(f"/api/products/{catalog['lipstick']['id']}").json()["reviews_count"] == 0


def test_review_rating_bounds_and_unknown_product(client, alice, catalog):
    bad = {"product_id": catalog["cream"]["id"], "rating": 6, "title": "t", "comment": "c"}
    assert client.post("/api/reviews", json=bad, headers=alice[1]).status_code == 400
    ghost = {"product_id": "ghost", "rating": 4, "title": "t", "comment": "c"}
    assert client.post("/api/reviews", json=ghost, headers=alice[1]).status_code == 404
