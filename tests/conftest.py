import pytest
from fastapi.testclient import TestClient

import main
from auth import create_token, hash_password
from schemas import Category, Product, User
from storage import MemStorage

ADDRESS = {
    "full_name": "Jane Doe",
    "address_line1": "12 Rue des Fleurs",
    "address_line2": "Apt 4",
    "city": "Lyon",
    "state": "Rhone",
    "postal_code": "69001",
    "country": "FR",
    "phone": "+33 6 12 34 56 78",
}


def make_user(store, username, is_admin=False, password="secret123"):
    user = store.create_user(User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(password),
        is_admin=is_admin,
    ))
    token = create_token({"id": user["id"], "username": username, "is_admin": is_admin})
    return user, {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store():
    return MemStorage()


@pytest.fixture
def client(store):
    main.app.state.storage = store
    yield TestClient(main.app)
    main.app.state.storage = None


@pytest.fixture
def alice(store):
    return make_user(store, "alice")


@pytest.fixture
def bob(store):
    return make_user(store, "bob")


@pytest.fixture
def admin(store):
    return make_user(store, "admin", is_admin=True)


@pytest.fixture
def catalog(store):
    skincare = store.create_category(Category(name="Skincare", description="For all skin types"))
    makeup = store.create_category(Category(name="Makeup"))
    cream = store.create_product(Product(
        name="Hydrating Facial Cream", description="Deep hydration", price=39.99, sale_price=29.99,
        image="cream.jpg", category_id=skincare["id"], stock=10, featured=True, new=True,
    ))
    lipstick = store.create_product(Product(
        name="Creamy Matte Lipstick", description="Long lasting", price=24.5,
        image="lipstick.jpg", category_id=makeup["id"], stock=5, bestseller=True,
    ))
    return {"skincare": skincare, "makeup": makeup, "cream": cream, "lipstick": lipstick}
