import os

from dotenv import load_dotenv

# Loads the .env file from the project root
load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pulse.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_STAGE = ENV_NORMALIZED in {"stage", "staging"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}
DEV_BOOTSTRAP_ALLOW = _env_flag("DEV_BOOTSTRAP_ALLOW")

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

# Access tokens (JWT)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "" if IS_PROD else "dev-only-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Refresh tokens (itsdangerous signed payloads)
REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", JWT_SECRET_KEY)
REFRESH_TOKEN_MAX_AGE_SECONDS = int(os.getenv("REFRESH_TOKEN_MAX_AGE_SECONDS", "1209600"))

# PIN policy. The client never sees the attempt ceiling, only attempts_remaining.
PIN_MAX_FAILED_ATTEMPTS = int(os.getenv("PIN_MAX_FAILED_ATTEMPTS", "5"))
PIN_STALENESS_MONTHS = int(os.getenv("PIN_STALENESS_MONTHS", "3"))

# Console client
PULSE_API_BASE_URL = os.getenv("PULSE_API_BASE_URL", "http://localhost:8000").rstrip("/")
PULSE_HTTP_TIMEOUT_SECONDS = float(os.getenv("PULSE_HTTP_TIMEOUT_SECONDS", "10"))
PIN_ROTATION_REDIRECT_DELAY_SECONDS = float(os.getenv("PIN_ROTATION_REDIRECT_DELAY_SECONDS", "2"))
