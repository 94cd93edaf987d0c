import logging
import os

# Remote config store
CONFIG_API_BASE_URL = os.getenv("CONFIG_API_BASE_URL", "http://localhost/kulana-api/endpoints").rstrip("/")
CONFIG_API_TIMEOUT = float(os.getenv("CONFIG_API_TIMEOUT", "10"))
UPLOAD_TIMEOUT = float(os.getenv("UPLOAD_TIMEOUT", "60"))

# Durable admin storage (token, user, preferences)
STORAGE_PATH = os.getenv("STORAGE_PATH", ".admin_storage.json")

# Admin console tokens
JWT_SECRET = os.getenv("JWT_SECRET", "dev_secret_change_me")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 12)))

# Rate limiting for the admin login route
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX = 10

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 8000))


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
