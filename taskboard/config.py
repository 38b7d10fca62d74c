# taskboard/config.py
import os
from dotenv import load_dotenv

load_dotenv()

def _as_bool(val: str | None, default=False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}

class Config:
    # --- Core ---
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    APP_VERSION = os.getenv("APP_VERSION")

    # DB
    SQLALCHEMY_DATABASE_URI = (
        os.getenv("SQLALCHEMY_DATABASE_URI")
        or os.getenv("DATABASE_URL")
        or "sqlite:///taskboard.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF (token via GET /auth/csrf, sent back in the X-CSRFToken header)
    WTF_CSRF_ENABLED = _as_bool(os.getenv("WTF_CSRF_ENABLED", "1"), default=True)
    WTF_CSRF_TIME_LIMIT = None

    # --- Assignment workflow ---
    # A candidate with this many active High-priority tasks needs to approve new work.
    OVERLOAD_THRESHOLD = int(os.getenv("OVERLOAD_THRESHOLD", "2"))
    TASKS_PER_PAGE = int(os.getenv("TASKS_PER_PAGE", "50"))

    # --- Logging ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_FILENAME = os.getenv("LOG_FILENAME", "taskboard.log")
    LOG_JSON = _as_bool(os.getenv("LOG_JSON", "0"))
    LOG_TO_FILE = _as_bool(os.getenv("LOG_TO_FILE", "1"), default=True)

    # --- Sentry ---
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0"))

    # --- Security cookies (recommended for prod) ---
    SESSION_COOKIE_SECURE = _as_bool(os.getenv("SESSION_COOKIE_SECURE", "1"))
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
