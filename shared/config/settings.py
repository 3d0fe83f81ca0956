import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# --- Database ---
DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "storefront")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_ECHO = _flag("DB_ECHO")

# Adds tracebacks to error bodies
APP_DEBUG = _flag("APP_DEBUG")
SERVICE_NAME = os.getenv("SERVICE_NAME", "storefront")

# --- Pricing ---
# "flat" ($5 standard / $15 express) or "threshold" (free from $100, else $10)
SHIPPING_POLICY = os.getenv("SHIPPING_POLICY", "flat")

# --- Payment gateway (Stripe REST API) ---
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1")
PAYMENT_GATEWAY_TIMEOUT = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "10"))
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")

# --- Mail transport ---
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")
EMAIL_SECURE = _flag("EMAIL_SECURE")
EMAIL_FROM = os.getenv("EMAIL_FROM", EMAIL_USER or "orders@storefront.local")
SHOP_NAME = os.getenv("SHOP_NAME", "Kaiyanami Shop")

# "inline" drains the outbox inside the API process, "external" leaves it
# to `python -m services.notification_service.worker`
NOTIFIER_MODE = os.getenv("NOTIFIER_MODE", "inline")
NOTIFIER_POLL_SECONDS = float(os.getenv("NOTIFIER_POLL_SECONDS", "5"))

# --- Rate limiting ---
RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED", "true")
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "20/minute")

# --- Tracing ---
OTEL_ENABLED = _flag("OTEL_ENABLED", "true")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")

# --- Auth ---
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
