import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
# Multi-document transactions need a replica set; standalone servers must turn this off
DATABASE_TRANSACTIONS = _flag("DATABASE_TRANSACTIONS", "true")

# Sessions
JWT_SECRET = os.getenv("JWT_SECRET", "secret-key-change-me")
JWT_ALG = "HS256"
SESSION_COOKIE = os.getenv("SESSION_COOKIE", "bokt_session")
SESSION_MAX_AGE_DAYS = int(os.getenv("SESSION_MAX_AGE_DAYS", 30))
SESSION_COOKIE_SECURE = _flag("SESSION_COOKIE_SECURE", "false")

# Object storage
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "photos")
UPLOAD_CONCURRENCY = int(os.getenv("UPLOAD_CONCURRENCY", 5))

# Application photo limits
APPLICATION_PHOTO_COUNT = 5
MAX_PHOTO_BYTES = 50 * 1024 * 1024
MAX_TOTAL_PHOTO_BYTES = 250 * 1024 * 1024

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 8000))
