import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    # Central database (tenant directory, subscriptions, payments)
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./central.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")

    # Tenant identification
    TENANT_HEADER = data.get("TENANT_HEADER", "X-Tenant")
    TENANT_QUERY_PARAMETER = data.get("TENANT_QUERY_PARAMETER", "tenant")
    CENTRAL_DOMAINS = data.get("CENTRAL_DOMAINS", ["localhost"])
    SUBDOMAIN_ROUTE_PREFIXES = data.get(
        "SUBDOMAIN_ROUTE_PREFIXES", ["/api/internal", "/api/superadmin"]
    )
    TENANT_OPTIONAL_ROUTES = data.get(
        "TENANT_OPTIONAL_ROUTES",
        [
            "/api/health",
            "/healthz",
            "/readyz",
            "/api/auth/*/callback",
            "/api/auth/me",
        ],
    )

    # Tenant database defaults (per-tenant coordinates override these)
    TENANT_DB_DRIVER = data.get("TENANT_DB_DRIVER", "sqlite+aiosqlite")
    TENANT_DB_HOST = data.get("TENANT_DB_HOST", None)
    TENANT_DB_PORT = data.get("TENANT_DB_PORT", None)
    TENANT_DB_USERNAME = data.get("TENANT_DB_USERNAME", None)
    TENANT_DB_PASSWORD = data.get("TENANT_DB_PASSWORD", None)

    # Billing
    BILLING_CURRENCY = data.get("BILLING_CURRENCY", "EUR")
    PLAN_PRICE_PER_USER_CENTS = data.get(
        "PLAN_PRICE_PER_USER_CENTS", {"starter": 0, "team": 4400, "enterprise": 5900}
    )
    PLAN_MAX_USERS = data.get(
        "PLAN_MAX_USERS", {"starter": 2, "team": 50, "enterprise": 150}
    )
    ADDON_PERCENTAGE = float(data.get("ADDON_PERCENTAGE", 0.18))
    BILLING_PRORATE_SEAT_INCREASES = bool(data.get("BILLING_PRORATE_SEAT_INCREASES", False))
    DOWNGRADE_CANCEL_WINDOW_HOURS = int(data.get("DOWNGRADE_CANCEL_WINDOW_HOURS", 24))
    GRACE_PERIOD_DAYS = int(data.get("GRACE_PERIOD_DAYS", 7))
    MAX_RENEWAL_ATTEMPTS = int(data.get("MAX_RENEWAL_ATTEMPTS", 3))

    # Payment gateway
    PAYMENT_GATEWAY = data.get("PAYMENT_GATEWAY", "simulated")
    STRIPE_SECRET_KEY = data.get("STRIPE_SECRET_KEY", "")
