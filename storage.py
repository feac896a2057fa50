"""
Storage layer

One interface, two backends:
- MemStorage: in-process dicts behind a re-entrant lock (dev, demos, tests)
- MongoStorage: MongoDB collections through pymongo

Every method returns plain dicts shaped for JSON (``id`` instead of ``_id``),
or None when the requested document does not exist.
"""
import copy
import logging
import re
import threading
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from bson.objectid import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import config
from database import create_document, get_documents
from schemas import (
    CartItem,
    CartItemCreate,
    Category,
    Order,
    OrderItem,
    Product,
    Review,
    User,
)

logger = logging.getLogger(__name__)

STATUS_PROGRESSION = ["pending", "processing", "shipped", "delivered"]

# forward along the progression (skips allowed), or cancelled from anything not already cancelled
STATUS_TRANSITIONS = {
    status: set(STATUS_PROGRESSION[i + 1:]) | {"cancelled"}
    for i, status in enumerate(STATUS_PROGRESSION)
}
STATUS_TRANSITIONS["cancelled"] = set()


# ----------------------- Errors -----------------------
class StoreError(Exception):
    """Base class for domain errors raised by a storage backend."""

    message = "Store error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class DuplicateError(StoreError):
    message = "Already exists"


class UnknownCategoryError(StoreError):
    message = "Category not found"


class CategoryInUseError(StoreError):
    message = "Category still has products"


class EmptyCartError(StoreError):
    message = "Cart is empty"


class CheckoutInProgressError(StoreError):
    message = "A checkout for this cart is already in progress"


class StaleCartError(StoreError):
    def __init__(self, product_ids: List[str]):
        self.product_ids = list(product_ids)
        super().__init__("Cart references products that no longer exist: " + ", ".join(self.product_ids))


class InsufficientStockError(StoreError):
    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}"
        )


class InvalidStatusTransition(StoreError):
    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Cannot change order status from {current} to {new}")


# ----------------------- Utils -----------------------
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(ObjectId())


def serialize_doc(doc):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
        elif isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc


def effective_price(product: dict) -> float:
    sale_price = product.get("sale_price")
    return float(sale_price) if sale_price is not None else float(product["price"])


def check_transition(current: str, new: str) -> None:
    if new not in STATUS_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(current, new)


def build_order_lines(cart_items: List[dict], products: Dict[str, Optional[dict]]) -> Tuple[List[OrderItem], float]:
    """Snapshot each cart line at the product's current effective price.

    Raises StaleCartError when any line points at a product that is gone.
    """
    missing = [c["product_id"] for c in cart_items if products.get(c["product_id"]) is None]
    if missing:
        raise StaleCartError(missing)
    items = []
    for line in cart_items:
        product = products[line["product_id"]]
        items.append(OrderItem(
            product_id=line["product_id"],
            name=product["name"],
            quantity=int(line["quantity"]),
            price=effective_price(product),
            variant=line.get("variant"),
        ))
    total = sum(i.price * i.quantity for i in items)
    return items, total


class Storage(ABC):
    name = "abstract"

    # Users
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[dict]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[dict]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[dict]: ...

    @abstractmethod
    def create_user(self, user: User) -> dict: ...

    # Categories
    @abstractmethod
    def get_categories(self) -> List[dict]: ...

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[dict]: ...

    @abstractmethod
    def create_category(self, category: Category) -> dict: ...

    @abstractmethod
    def update_category(self, category_id: str, changes: dict) -> Optional[dict]: ...

    @abstractmethod
    def delete_category(self, category_id: str) -> bool: ...

    # Products
    @abstractmethod
    def get_products(self, category: Optional[str] = None, featured: Optional[bool] = None,
                     new: Optional[bool] = None, bestseller: Optional[bool] = None,
                     q: Optional[str] = None) -> List[dict]: ...

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[dict]: ...

    @abstractmethod
    def create_product(self, product: Product) -> dict: ...

    @abstractmethod
    def update_product(self, product_id: str, changes: dict) -> Optional[dict]: ...

    @abstractmethod
    def delete_product(self, product_id: str) -> bool: ...

    # Reviews
    @abstractmethod
    def get_reviews(self, product_id: str) -> List[dict]: ...

    @abstractmethod
    def create_review(self, review: Review) -> dict: ...

    def review_summary(self, product_id: str) -> Tuple[Optional[float], int]:
        ratings = [float(r["rating"]) for r in self.get_reviews(product_id)]
        if not ratings:
            return None, 0
        return round(sum(ratings) / len(ratings), 2), len(ratings)

    # Cart
    @abstractmethod
    def get_cart_items(self, user_id: str) -> List[dict]: ...

    @abstractmethod
    def get_cart_item(self, item_id: str) -> Optional[dict]: ...

    @abstractmethod
    def add_to_cart(self, user_id: str, item: CartItemCreate) -> dict:
        """Create the line, or add to the quantity of the user's existing line for that product."""

    @abstractmethod
    def update_cart_item(self, item_id: str, changes: dict) -> Optional[dict]: ...

    @abstractmethod
    def delete_cart_item(self, item_id: str) -> bool: ...

    @abstractmethod
    def clear_cart(self, user_id: str) -> int: ...

    # Orders
    @abstractmethod
    def get_orders(self, user_id: str) -> List[dict]: ...

    @abstractmethod
    def get_all_orders(self, status: Optional[str] = None) -> List[dict]: ...

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[dict]: ...

    @abstractmethod
    def place_order(self, user_id: str, shipping_address: dict, payment_method: str) -> dict:
        """Turn the user's cart into an order, reserve stock and empty the cart, all or nothing."""

    @abstractmethod
    def update_order_status(self, order_id: str, status: str) -> Optional[dict]: ...

    # Admin
    @abstractmethod
    def stats(self) -> dict: ...

    def describe(self) -> dict:
        return {"backend": self.name}


# ----------------------- In-memory backend -----------------------
class MemStorage(Storage):
    name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._users: Dict[str, dict] = {}
        self._categories: Dict[str, dict] = {}
        self._products: Dict[str, dict] = {}
        self._reviews: Dict[str, dict] = {}
        self._cart: Dict[str, dict] = {}
        self._orders: Dict[str, dict] = {}

    @staticmethod
    def _out(doc):
        return serialize_doc(copy.deepcopy(doc)) if doc else None

    def _insert(self, table: Dict[str, dict], data: dict) -> dict:
        now = utcnow()
        doc = {"id": new_id(), **data, "created_at": now, "updated_at": now}
        table[doc["id"]] = doc
        return self._out(doc)

    # Users
    def get_user(self, user_id):
        return self._out(self._users.get(user_id))

    def get_user_by_username(self, username):
        with self._lock:
            return self._out(next((u for u in self._users.values() if u["username"] == username), None))

    def get_user_by_email(self, email):
        with self._lock:
            email = email.lower()
            return self._out(next((u for u in self._users.values() if u["email"].lower() == email), None))

    def create_user(self, user):
        with self._lock:
            if self.get_user_by_username(user.username):
                raise DuplicateError("Username already exists")
            if self.get_user_by_email(user.email):
                raise DuplicateError("Email already registered")
            return self._insert(self._users, user.model_dump())

    # Categories
    def get_categories(self):
        with self._lock:
            return [self._out(c) for c in self._categories.values()]

    def get_category(self, category_id):
        return self._out(self._categories.get(category_id))

    def _category_name_taken(self, name, exclude_id=None):
        return any(c["name"] == name and c["id"] != exclude_id for c in self._categories.values())

    def create_category(self, category):
        with self._lock:
            if self._category_name_taken(category.name):
                raise DuplicateError("Category name already exists")
            return self._insert(self._categories, category.model_dump())

    def update_category(self, category_id, changes):
        with self._lock:
            doc = self._categories.get(category_id)
            if doc is None:
                return None
            if "name" in changes and self._category_name_taken(changes["name"], exclude_id=category_id):
                raise DuplicateError("Category name already exists")
            doc.update(changes, updated_at=utcnow())
            return self._out(doc)

    def delete_category(self, category_id):
        with self._lock:
            if category_id not in self._categories:
                return False
            if any(p["category_id"] == category_id for p in self._products.values()):
                raise CategoryInUseError()
            del self._categories[category_id]
            return True

    # Products
    def get_products(self, category=None, featured=None, new=None, bestseller=None, q=None):
        with self._lock:
            products = list(self._products.values())
        if category:
            products = [p for p in products if p["category_id"] == category]
        for flag, wanted in (("featured", featured), ("new", new), ("bestseller", bestseller)):
            if wanted is not None:
                products = [p for p in products if p[flag] == wanted]
        if q:
            needle = q.lower()
            products = [p for p in products
                        if needle in p["name"].lower() or needle in (p.get("description") or "").lower()]
        return [self._out(p) for p in products]

    def get_product(self, product_id):
        return self._out(self._products.get(product_id))

    def create_product(self, product):
        with self._lock:
            if product.category_id not in self._categories:
                raise UnknownCategoryError()
            return self._insert(self._products, product.model_dump())

    def update_product(self, product_id, changes):
        with self._lock:
            doc = self._products.get(product_id)
            if doc is None:
                return None
            if "category_id" in changes and changes["category_id"] not in self._categories:
                raise UnknownCategoryError()
            doc.update(changes, updated_at=utcnow())
            return self._out(doc)

    def delete_product(self, product_id):
        with self._lock:
            if self._products.pop(product_id, None) is None:
                return False
            for item_id in [i for i, c in self._cart.items() if c["product_id"] == product_id]:
                del self._cart[item_id]
            return True

    # Reviews
    def get_reviews(self, product_id):
        with self._lock:
            reviews = [r for r in self._reviews.values() if r["product_id"] == product_id]
        return [self._out(r) for r in reversed(reviews)]

    def create_review(self, review):
        with self._lock:
            return self._insert(self._reviews, review.model_dump())

    # Cart
    def get_cart_items(self, user_id):
        with self._lock:
            return [self._out(c) for c in self._cart.values() if c["user_id"] == user_id]

    def get_cart_item(self, item_id):
        return self._out(self._cart.get(item_id))

    def add_to_cart(self, user_id, item):
        with self._lock:
            existing = next((c for c in self._cart.values()
                             if c["user_id"] == user_id and c["product_id"] == item.product_id), None)
            if existing is None:
                return self._insert(self._cart, CartItem(user_id=user_id, **item.model_dump()).model_dump())
            existing["quantity"] += item.quantity
            if item.variant is not None:
                existing["variant"] = item.variant
            existing["updated_at"] = utcnow()
            return self._out(existing)

    def update_cart_item(self, item_id, changes):
        with self._lock:
            doc = self._cart.get(item_id)
            if doc is None:
                return None
            doc.update(changes, updated_at=utcnow())
            return self._out(doc)

    def delete_cart_item(self, item_id):
        with self._lock:
            return self._cart.pop(item_id, None) is not None

    def clear_cart(self, user_id):
        with self._lock:
            ids = [i for i, c in self._cart.items() if c["user_id"] == user_id]
            for item_id in ids:
                del self._cart[item_id]
            return len(ids)

    # Orders
    def get_orders(self, user_id):
        with self._lock:
            orders = [o for o in self._orders.values() if o["user_id"] == user_id]
        return [self._out(o) for o in reversed(orders)]

    def get_all_orders(self, status=None):
        with self._lock:
            orders = [o for o in self._orders.values() if status is None or o["status"] == status]
        return [self._out(o) for o in reversed(orders)]

    def get_order(self, order_id):
        return self._out(self._orders.get(order_id))

    def place_order(self, user_id, shipping_address, payment_method):
        with self._lock:
            lines = [c for c in self._cart.values() if c["user_id"] == user_id]
            if not lines:
                raise EmptyCartError()
            products = {c["product_id"]: self._products.get(c["product_id"]) for c in lines}
            items, total = build_order_lines(lines, products)

            requested = Counter()
            for item in items:
                requested[item.product_id] += item.quantity
            for product_id, qty in requested.items():
                available = self._products[product_id]["stock"]
                if available < qty:
                    raise InsufficientStockError(product_id, qty, available)
            for product_id, qty in requested.items():
                self._products[product_id]["stock"] -= qty

            order = Order(user_id=user_id, items=items, total=total,
                          shipping_address=shipping_address, payment_method=payment_method)
            created = self._insert(self._orders, order.model_dump())
            for line in lines:
                del self._cart[line["id"]]
        logger.info("Order %s placed by user %s: %d item(s), total %.2f",
                    created["id"], user_id, len(items), total)
        return created

    def update_order_status(self, order_id, status):
        with self._lock:
            doc = self._orders.get(order_id)
            if doc is None:
                return None
            previous = doc["status"]
            check_transition(previous, status)
            doc["status"] = status
            doc["updated_at"] = utcnow()
            if status == "cancelled":
                for item in doc["items"]:
                    product = self._products.get(item["product_id"])
                    if product is not None:
                        product["stock"] += item["quantity"]
            result = self._out(doc)
        logger.info("Order %s status %s -> %s", order_id, previous, status)
        return result

    # Admin
    def stats(self):
        with self._lock:
            by_status = Counter(o["status"] for o in self._orders.values())
            revenue = sum(o["total"] for o in self._orders.values() if o["status"] != "cancelled")
            return {
                "users": len(self._users),
                "products": len(self._products),
                "categories": len(self._categories),
                "orders": len(self._orders),
                "revenue": round(revenue, 2),
                "orders_by_status": dict(by_status),
            }


# ----------------------- MongoDB backend -----------------------
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]


def _oid(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if value and ObjectId.is_valid(value) else None


class MongoStorage(Storage):
    name = "mongo"

    def __init__(self, db):
        if db is None:
            raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME.")
        self.db = db
        self.ensure_indexes()

    def ensure_indexes(self):
        self.db["user"].create_index("username", unique=True)
        self.db["user"].create_index("email", unique=True)
        self.db["category"].create_index("name", unique=True)
        self.db["product"].create_index("category_id")
        self.db["review"].create_index("product_id")
        self.db["cart_item"].create_index([("user_id", 1), ("product_id", 1)], unique=True)
        self.db["order"].create_index([("user_id", 1), ("created_at", -1)])
        self.db["checkout_lock"].create_index("created_at", expireAfterSeconds=config.CHECKOUT_LOCK_TTL)

    def _find_one(self, collection: str, doc_id: str) -> Optional[dict]:
        oid = _oid(doc_id)
        if oid is None:
            return None
        return serialize_doc(self.db[collection].find_one({"_id": oid}))

    def _insert(self, collection: str, data) -> dict:
        inserted_id = create_document(collection, data, database=self.db)
        return self._find_one(collection, inserted_id)

    def _update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        oid = _oid(doc_id)
        if oid is None:
            return None
        doc = self.db[collection].find_one_and_update(
            {"_id": oid},
            {"$set": {**changes, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_doc(doc)

    def _delete(self, collection: str, doc_id: str) -> bool:
        oid = _oid(doc_id)
        if oid is None:
            return False
        return self.db[collection].delete_one({"_id": oid}).deleted_count > 0

    # Users
    def get_user(self, user_id):
        return self._find_one("user", user_id)

    def get_user_by_username(self, username):
        return serialize_doc(self.db["user"].find_one({"username": username}))

    def get_user_by_email(self, email):
        pattern = "^" + re.escape(email) + "$"
        return serialize_doc(self.db["user"].find_one({"email": {"$regex": pattern, "$options": "i"}}))

    def create_user(self, user):
        if self.get_user_by_email(user.email):
            raise DuplicateError("Email already registered")
        try:
            return self._insert("user", user)
        except DuplicateKeyError:
            raise DuplicateError("Username or email already registered")

    # Categories
    def get_categories(self):
        return [serialize_doc(c) for c in self.db["category"].find({})]

    def get_category(self, category_id):
        return self._find_one("category", category_id)

    def create_category(self, category):
        try:
            return self._insert("category", category)
        except DuplicateKeyError:
            raise DuplicateError("Category name already exists")

    def update_category(self, category_id, changes):
        try:
            return self._update("category", category_id, changes)
        except DuplicateKeyError:
            raise DuplicateError("Category name already exists")

    def delete_category(self, category_id):
        if self.get_category(category_id) is None:
            return False
        if self.db["product"].find_one({"category_id": category_id}) is not None:
            raise CategoryInUseError()
        return self._delete("category", category_id)

    # Products
    def get_products(self, category=None, featured=None, new=None, bestseller=None, q=None):
        filt = {}
        if category:
            filt["category_id"] = category
        for flag, wanted in (("featured", featured), ("new", new), ("bestseller", bestseller)):
            if wanted is not None:
                filt[flag] = wanted
        if q:
            pattern = re.escape(q)
            filt["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        return [serialize_doc(p) for p in self.db["product"].find(filt)]

    def get_product(self, product_id):
        return self._find_one("product", product_id)

    def create_product(self, product):
        if self.get_category(product.category_id) is None:
            raise UnknownCategoryError()
        return self._insert("product", product)

    def update_product(self, product_id, changes):
        if "category_id" in changes and self.get_category(changes["category_id"]) is None:
            raise UnknownCategoryError()
        return self._update("product", product_id, changes)

    def delete_product(self, product_id):
        deleted = self._delete("product", product_id)
        if deleted:
            self.db["cart_item"].delete_many({"product_id": product_id})
        return deleted

    # Reviews
    def get_reviews(self, product_id):
        docs = get_documents("review", {"product_id": product_id}, sort=NEWEST_FIRST, database=self.db)
        return [serialize_doc(r) for r in docs]

    def create_review(self, review):
        return self._insert("review", review)

    # Cart
    def get_cart_items(self, user_id):
        return [serialize_doc(c) for c in self.db["cart_item"].find({"user_id": user_id})]

    def get_cart_item(self, item_id):
        return self._find_one("cart_item", item_id)

    def add_to_cart(self, user_id, item):
        now = utcnow()
        update = {
            "$inc": {"quantity": item.quantity},
            "$set": {"updated_at": now},
            "$setOnInsert": {"created_at": now},
        }
        if item.variant is not None:
            update["$set"]["variant"] = item.variant
        else:
            update["$setOnInsert"]["variant"] = None
        query = {"user_id": user_id, "product_id": item.product_id}
        try:
            doc = self.db["cart_item"].find_one_and_update(
                query, update, upsert=True, return_document=ReturnDocument.AFTER)
        except DuplicateKeyError:
            # lost an upsert race against the same (user, product); the line exists now
            doc = self.db["cart_item"].find_one_and_update(
                query, update, return_document=ReturnDocument.AFTER)
        return serialize_doc(doc)

    def update_cart_item(self, item_id, changes):
        return self._update("cart_item", item_id, changes)

    def delete_cart_item(self, item_id):
        return self._delete("cart_item", item_id)

    def clear_cart(self, user_id):
        return self.db["cart_item"].delete_many({"user_id": user_id}).deleted_count

    # Orders
    def get_orders(self, user_id):
        docs = get_documents("order", {"user_id": user_id}, sort=NEWEST_FIRST, database=self.db)
        return [serialize_doc(o) for o in docs]

    def get_all_orders(self, status=None):
        filt = {"status": status} if status else {}
        docs = get_documents("order", filt, sort=NEWEST_FIRST, database=self.db)
        return [serialize_doc(o) for o in docs]

    def get_order(self, order_id):
        return self._find_one("order", order_id)

    def _acquire_checkout_lock(self, user_id):
        try:
            self.db["checkout_lock"].insert_one({"_id": user_id, "created_at": utcnow()})
        except DuplicateKeyError:
            logger.warning("Concurrent checkout rejected for user %s", user_id)
            raise CheckoutInProgressError()

    def _release_stock(self, reserved: List[Tuple[ObjectId, int]]):
        for oid, qty in reserved:
            self.db["product"].update_one({"_id": oid}, {"$inc": {"stock": qty}})

    def place_order(self, user_id, shipping_address, payment_method):
        self._acquire_checkout_lock(user_id)
        try:
            raw_lines = list(self.db["cart_item"].find({"user_id": user_id}))
            if not raw_lines:
                raise EmptyCartError()
            lines = [serialize_doc(c) for c in raw_lines]
            oids = [o for o in (_oid(c["product_id"]) for c in lines) if o is not None]
            products = {str(p["_id"]): p for p in self.db["product"].find({"_id": {"$in": oids}})}
            items, total = build_order_lines(lines, products)

            reserved: List[Tuple[ObjectId, int]] = []
            created = None
            try:
                for item in items:
                    oid = ObjectId(item.product_id)
                    res = self.db["product"].update_one(
                        {"_id": oid, "stock": {"$gte": item.quantity}},
                        {"$inc": {"stock": -item.quantity}},
                    )
                    if res.modified_count == 0:
                        current = self.db["product"].find_one({"_id": oid}) or {}
                        raise InsufficientStockError(item.product_id, item.quantity, int(current.get("stock", 0)))
                    reserved.append((oid, item.quantity))
                order = Order(user_id=user_id, items=items, total=total,
                              shipping_address=shipping_address, payment_method=payment_method)
                created = self._insert("order", order)
                self.db["cart_item"].delete_many({"_id": {"$in": [c["_id"] for c in raw_lines]}})
            except Exception:
                if created is not None:
                    logger.exception("Checkout for user %s failed after order %s was written; undoing it",
                                     user_id, created["id"])
                    self.db["order"].delete_one({"_id": ObjectId(created["id"])})
                    for doc in raw_lines:
                        self.db["cart_item"].replace_one({"_id": doc["_id"]}, doc, upsert=True)
                self._release_stock(reserved)
                raise
        finally:
            self.db["checkout_lock"].delete_one({"_id": user_id})
        logger.info("Order %s placed by user %s: %d item(s), total %.2f",
                    created["id"], user_id, len(items), total)
        return created

    def update_order_status(self, order_id, status):
        oid = _oid(order_id)
        if oid is None:
            return None
        current = self.db["order"].find_one({"_id": oid})
        if current is None:
            return None
        previous = current["status"]
        check_transition(previous, status)
        doc = self.db["order"].find_one_and_update(
            {"_id": oid, "status": previous},
            {"$set": {"status": status, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            # status moved underneath us; report against what is stored now
            latest = self.db["order"].find_one({"_id": oid}) or {}
            raise InvalidStatusTransition(latest.get("status", previous), status)
        if status == "cancelled":
            self._release_stock([(ObjectId(i["product_id"]), i["quantity"]) for i in doc["items"]
                                 if ObjectId.is_valid(i["product_id"])])
        logger.info("Order %s status %s -> %s", order_id, previous, status)
        return serialize_doc(doc)

    # Admin
    def stats(self):
        by_status = {}
        revenue = 0.0
        for row in self.db["order"].aggregate([
            {"$group": {"_id": "$status", "count": {"$sum": 1}, "revenue": {"$sum": "$total"}}},
        ]):
            by_status[row["_id"]] = row["count"]
            if row["_id"] != "cancelled":
                revenue += float(row["revenue"])
        return {
            "users": self.db["user"].count_documents({}),
            "products": self.db["product"].count_documents({}),
            "categories": self.db["category"].count_documents({}),
            "orders": self.db["order"].count_documents({}),
            "revenue": round(revenue, 2),
            "orders_by_status": by_status,
        }

    def describe(self):
        info = {"backend": self.name, "database": self.db.name, "collections": []}
        try:
            info["collections"] = self.db.list_collection_names()[:10]
            info["connection_status"] = "Connected"
        except Exception as e:
            logger.exception("MongoDB health check failed")
            info["connection_status"] = f"Error: {str(e)[:80]}"
        return info


def get_storage() -> Storage:
    if config.STORAGE_BACKEND == "mongo":
        from database import db
        logger.info("Using MongoDB storage (%s)", config.DATABASE_NAME)
        return MongoStorage(db)
    logger.info("Using in-memory storage")
    return MemStorage()
