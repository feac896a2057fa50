import os

# ----------------------- Database -----------------------
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mongo" if DATABASE_URL else "memory")

# ----------------------- Auth -----------------------
JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
SESSION_COOKIE = os.getenv("SESSION_COOKIE", "session")
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "0") == "1"

# ----------------------- App -----------------------
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "0") == "1"
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@camiu.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "8000"))

# Seconds before an abandoned checkout lock expires (Mongo TTL index)
CHECKOUT_LOCK_TTL = int(os.getenv("CHECKOUT_LOCK_TTL", "60"))
