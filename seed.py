import logging

import config
from auth import hash_password
from schemas import Category as CategorySchema, Product as ProductSchema, User as UserSchema
from storage import Storage

logger = logging.getLogger(__name__)

UNSPLASH = "https://images.unsplash.com/{}?auto=format&fit=crop&w={w}&h={w}"

DEMO_CATEGORIES = [
    {"name": "Skincare", "description": "Skincare products for all skin types",
     "image": UNSPLASH.format("photo-1567721913486-6585f069b332", w=400)},
    {"name": "Makeup", "description": "Makeup products for all occasions",
     "image": UNSPLASH.format("photo-1596462502278-27bfdc403348", w=400)},
    {"name": "Hair Care", "description": "Hair care products for all hair types",
     "image": UNSPLASH.format("photo-1599751449028-36357617369e", w=400)},
    {"name": "Fragrances", "description": "Fragrances for all occasions",
     "image": UNSPLASH.format("photo-1600612253971-422e7f7faeb6", w=400)},
]

# "category" is resolved to a category id at seed time
DEMO_PRODUCTS = [
    {
        "name": "Hydrating Facial Cream",
        "description": "A deeply hydrating face cream that nourishes and revitalizes dry skin. "
                       "Enriched with hyaluronic acid and natural botanical extracts.",
        "price": 39.99,
        "sale_price": 29.99,
        "photo": "photo-1586495777744-4413f21062fa",
        "category": "Skincare",
        "stock": 100,
        "featured": True,
        "new": True,
    },
    {
        "name": "Vitamin C Brightening Serum",
        "description": "A serum enriched with Vitamin C to brighten and even skin tone.",
        "price": 44.99,
        "sale_price": 35.99,
        "photo": "photo-1617897903246-719242758050",
        "category": "Skincare",
        "stock": 80,
        "featured": True,
    },
    {
        "name": "Longwear Matte Foundation",
        "description": "A long-lasting foundation with a matte finish and full coverage.",
        "price": 24.99,
        "photo": "photo-1599305445671-ac291c95aaa9",
        "category": "Makeup",
        "stock": 120,
        "featured": True,
    },
    {
        "name": "Creamy Matte Lipstick Set",
        "description": "A set of creamy matte lipsticks in various shades.",
        "price": 52.99,
        "sale_price": 42.99,
        "photo": "photo-1571875257727-256c39da42af",
        "category": "Makeup",
        "stock": 60,
        "featured": True,
        "bestseller": True,
    },
    {
        "name": "Floral Essence Perfume",
        "description": "A floral fragrance with notes of jasmine, rose, and vanilla.",
        "price": 68.99,
        "photo": "photo-1615375834706-05eb4f78d58e",
        "category": "Fragrances",
        "stock": 40,
        "featured": True,
    },
    {
        "name": "Hyaluronic Acid Sheet Mask Set",
        "description": "Sheet masks enriched with hyaluronic acid for deep hydration.",
        "price": 27.99,
        "sale_price": 22.99,
        "photo": "photo-1631730359585-38a4935786ad",
        "category": "Skincare",
        "stock": 90,
        "featured": True,
        "bestseller": True,
    },
]


def ensure_admin(store: Storage) -> bool:
    if store.get_user_by_username(config.ADMIN_USERNAME):
        return False
    store.create_user(UserSchema(
        username=config.ADMIN_USERNAME,
        email=config.ADMIN_EMAIL,
        password_hash=hash_password(config.ADMIN_PASSWORD),
        is_admin=True,
    ))
    logger.info("Created admin user %s", config.ADMIN_USERNAME)
    return True


def seed_demo_data(store: Storage) -> dict:
    """Load the demo catalog into an empty store. Non-empty catalogs are left alone."""
    admin_created = ensure_admin(store)
    if store.get_products() or store.get_categories():
        logger.info("Catalog already populated, skipping demo data")
        return {"seeded": False, "admin_created": admin_created, "message": "Catalog already populated"}

    category_ids = {}
    for c in DEMO_CATEGORIES:
        category_ids[c["name"]] = store.create_category(CategorySchema(**c))["id"]
    for p in DEMO_PRODUCTS:
        data = dict(p)
        photo = data.pop("photo")
        data["category_id"] = category_ids[data.pop("category")]
        data["image"] = UNSPLASH.format(photo, w=400)
        data["images"] = [UNSPLASH.format(photo, w=800)]
        store.create_product(ProductSchema(**data))
    logger.info("Seeded %d categories and %d products", len(DEMO_CATEGORIES), len(DEMO_PRODUCTS))
    return {"seeded": True, "admin_created": admin_created, "products": len(store.get_products())}
