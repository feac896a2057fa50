import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from auth import get_current_user, get_store, require_admin, router as auth_router
from schemas import (
    CartItemCreate,
    CartItemUpdate,
    Category as CategorySchema,
    CategoryUpdate,
    OrderCreateBody,
    OrderStatus,
    OrderStatusBody,
    Product as ProductSchema,
    ProductUpdate,
    Review as ReviewSchema,
    ReviewCreateBody,
)
from seed import seed_demo_data
from storage import (
    CategoryInUseError,
    CheckoutInProgressError,
    DuplicateError,
    EmptyCartError,
    InsufficientStockError,
    InvalidStatusTransition,
    StaleCartError,
    Storage,
    StoreError,
    UnknownCategoryError,
    get_storage,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "storage", None) is None:
        app.state.storage = get_storage()
    if config.SEED_DEMO_DATA:
        seed_demo_data(app.state.storage)
    yield


app = FastAPI(title="Cosmetics Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)


# ----------------------- Errors -----------------------
STORE_ERROR_STATUS = {
    DuplicateError: 409,
    UnknownCategoryError: 400,
    CategoryInUseError: 409,
    EmptyCartError: 400,
    CheckoutInProgressError: 409,
    StaleCartError: 409,
    InsufficientStockError: 409,
    InvalidStatusTransition: 409,
}


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    status_code = next((code for cls, code in STORE_ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    body = {"detail": exc.message}
    if isinstance(exc, StaleCartError):
        body["product_ids"] = exc.product_ids
    elif isinstance(exc, InsufficientStockError):
        body["product_id"] = exc.product_id
        body["available"] = exc.available
    if status_code == 409:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def found(doc, what: str):
    if not doc:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return doc


def owned_cart_item(store: Storage, item_id: str, user: dict) -> dict:
    item = found(store.get_cart_item(item_id), "Cart item")
    if item["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    return item


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Cosmetics storefront API running"}


@app.get("/test")
def test_database(store: Storage = Depends(get_store)):
    response = {
        "api": "✅ Running",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": config.DATABASE_NAME,
    }
    response.update(store.describe())
    return response


@app.post("/seed")
def seed(store: Storage = Depends(get_store)):
    return seed_demo_data(store)


# ----------------------- Categories -----------------------
@app.get("/api/categories")
def list_categories(store: Storage = Depends(get_store)):
    return store.get_categories()


@app.get("/api/categories/{category_id}")
def get_category(category_id: str, store: Storage = Depends(get_store)):
    return found(store.get_category(category_id), "Category")


@app.post("/api/categories", status_code=201)
def create_category(body: CategorySchema, admin=Depends(require_admin), store: Storage = Depends(get_store)):
    return store.create_category(body)


@app.put("/api/categories/{category_id}")
def update_category(category_id: str, body: CategoryUpdate, admin=Depends(require_admin),
                    store: Storage = Depends(get_store)):
    return found(store.update_category(category_id, body.changes()), "Category")


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(category_id: str, admin=Depends(require_admin), store: Storage = Depends(get_store)):
    if not store.delete_category(category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return Response(status_code=204)


# ----------------------- Products -----------------------
@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    new: Optional[bool] = None,
    bestseller: Optional[bool] = None,
    q: Optional[str] = None,
    store: Storage = Depends(get_store),
):
    return store.get_products(category=category, featured=featured, new=new, bestseller=bestseller, q=q)


@app.get("/api/products/{product_id}")
def get_product(product_id: str, store: Storage = Depends(get_store)):
    product = found(store.get_product(product_id), "Product")
    product["rating"], product["reviews_count"] = store.review_summary(product_id)
    return product


@app.post("/api/products", status_code=201)
def create_product(body: ProductSchema, admin=Depends(require_admin), store: Storage = Depends(get_store)):
    return store.create_product(body)


@app.put("/api/products/{product_id}")
def update_product(product_id: str, body: ProductUpdate, admin=Depends(require_admin),
                   store: Storage = Depends(get_store)):
    return found(store.update_product(product_id, body.changes()), "Product")


@app.delete("/api/products/{product_id}", status_code=204)
def delete_product(product_id: str, admin=Depends(require_admin), store: Storage = Depends(get_store)):
    if not store.delete_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return Response(status_code=204)


# ----------------------- Reviews -----------------------
@app.get("/api/products/{product_id}/reviews")
def list_reviews(product_id: str, store: Storage = Depends(get_store)):
    return store.get_reviews(product_id)


@app.post("/api/reviews", status_code=201)
def create_review(body: ReviewCreateBody, user=Depends(get_current_user), store: Storage = Depends(get_store)):
    found(store.get_product(body.product_id), "Product")
    return store.create_review(ReviewSchema(user_id=user["id"], **body.model_dump()))


# ----------------------- Cart -----------------------
@app.get("/api/cart")
def get_cart(user=Depends(get_current_user), store: Storage = Depends(get_store)):
    items = store.get_cart_items(user["id"])
    for item in items:
        item["product"] = store.get_product(item["product_id"])
    return items


@app.post("/api/cart", status_code=201)
def add_to_cart(body: CartItemCreate, user=Depends(get_current_user), store: Storage = Depends(get_store)):
    found(store.get_product(body.product_id), "Product")
    return store.add_to_cart(user["id"], body)


@app.put("/api/cart/{item_id}")
def update_cart_item(item_id: str, body: CartItemUpdate, user=Depends(get_current_user),
                     store: Storage = Depends(get_store)):
    owned_cart_item(store, item_id, user)
    return found(store.update_cart_item(item_id, body.changes()), "Cart item")


@app.delete("/api/cart/{item_id}", status_code=204)
def delete_cart_item(item_id: str, user=Depends(get_current_user), store: Storage = Depends(get_store)):
    owned_cart_item(store, item_id, user)
    store.delete_cart_item(item_id)
    return Response(status_code=204)


@app.delete("/api/cart", status_code=204)
def clear_cart(user=Depends(get_current_user), store: Storage = Depends(get_store)):
    store.clear_cart(user["id"])
    return Response(status_code=204)


# ----------------------- Orders -----------------------
@app.post("/api/orders", status_code=201)
def create_order(body: OrderCreateBody, user=Depends(get_current_user), store: Storage = Depends(get_store)):
    return store.place_order(
        user["id"],
        body.shipping_address.model_dump(exclude_unset=True),
        body.payment_method,
    )


@app.get("/api/orders")
def list_orders(user=Depends(get_current_user), store: Storage = Depends(get_store)):
    return store.get_orders(user["id"])


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user), store: Storage = Depends(get_store)):
    order = found(store.get_order(order_id), "Order")
    if order["user_id"] != user["id"] and not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Forbidden")
    for item in order["items"]:
        item["product"] = store.get_product(item["product_id"])
    return order


# ----------------------- Admin -----------------------
@app.get("/api/admin/orders")
def list_all_orders(status: Optional[OrderStatus] = None, admin=Depends(require_admin),
                    store: Storage = Depends(get_store)):
    return store.get_all_orders(status=status)


@app.patch("/api/admin/orders/{order_id}/status")
def update_order_status(order_id: str, body: OrderStatusBody, admin=Depends(require_admin),
                        store: Storage = Depends(get_store)):
    return found(store.update_order_status(order_id, body.status), "Order")


@app.get("/api/admin/stats")
def admin_stats(admin=Depends(require_admin), store: Storage = Depends(get_store)):
    return store.stats()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
