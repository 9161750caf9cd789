import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY: str = os.getenv("SECRET_KEY", "qbank-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

# Database — stored in backend/data/
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "qbank.db"),
)
DB_CONNECT_ATTEMPTS: int = int(os.getenv("DB_CONNECT_ATTEMPTS", "3"))
DB_RETRY_DELAY_SECONDS: float = float(os.getenv("DB_RETRY_DELAY_SECONDS", "1.0"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# First superadmin, created on startup when the users table is empty
SUPERADMIN_USERNAME: str = os.getenv("SUPERADMIN_USERNAME", "superadmin")
SUPERADMIN_PASSWORD: str = os.getenv("SUPERADMIN_PASSWORD", "superadmin")

# Workflow
EXPLANATION_REQUIRES_REVIEW: bool = _flag("EXPLANATION_REQUIRES_REVIEW", "false")
REQUIRE_SUBSCRIPTION: bool = _flag("REQUIRE_SUBSCRIPTION", "true")

# Payment gateway
PAYMENT_API_URL: str = os.getenv("PAYMENT_API_URL", "https://api.moyasar.com/v1")
PAYMENT_SECRET_KEY: str = os.getenv("PAYMENT_SECRET_KEY", "")
PAYMENT_WEBHOOK_SECRET: str = os.getenv("PAYMENT_WEBHOOK_SECRET", "")
PAYMENT_TIMEOUT_SECONDS: float = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10"))

# Subscription expiry sweep
CRON_SECRET: str = os.getenv("CRON_SECRET", "")
SUBSCRIPTION_SWEEP_ENABLED: bool = _flag("SUBSCRIPTION_SWEEP_ENABLED", "false")
SUBSCRIPTION_SWEEP_INTERVAL_SECONDS: int = int(os.getenv("SUBSCRIPTION_SWEEP_INTERVAL_SECONDS", "86400"))
