import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pulse.core.config import CORS_ORIGINS, DATABASE_URL, DEV_BOOTSTRAP_ALLOW, IS_PROD
from pulse.core.database import Base, SessionLocal, engine
from pulse.core.logging_setup import configure_logging
from pulse.core.startup_checks import apply_migrations, ensure_migrations_applied, validate_database_environment
from pulse.middleware.observability import ObservabilityMiddleware
import pulse.models  # noqa: F401  registers every model before create_all

from pulse.routers.auth import router as auth_router
from pulse.routers.links import router as links_router
from pulse.routers.pin import router as pin_router
from pulse.routers.profile import router as profile_router
from pulse.routers.staff import router as staff_router
from pulse.services.staff_admin import find_owner, upsert_owner

configure_logging()

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[OWNER_BOOTSTRAP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Pulse Staff Access API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)


def _bootstrap_owner_from_env() -> None:
    password = os.getenv("OWNER_BOOTSTRAP_PASSWORD", "").strip()
    if not password:
        logger.info("%s skipped: OWNER_BOOTSTRAP_PASSWORD not set", BOOTSTRAP_PREFIX)
        return
    if IS_PROD and not DEV_BOOTSTRAP_ALLOW:
        logger.warning("%s refused in production without DEV_BOOTSTRAP_ALLOW", BOOTSTRAP_PREFIX)
        return

    business_code = os.getenv("OWNER_BOOTSTRAP_BUSINESS_CODE", "demo").strip() or "demo"
    business_name = os.getenv("OWNER_BOOTSTRAP_BUSINESS_NAME", "Demo Business").strip() or "Demo Business"
    email = os.getenv("OWNER_BOOTSTRAP_EMAIL", "owner@example.com").strip() or "owner@example.com"
    full_name = os.getenv("OWNER_BOOTSTRAP_NAME", "Owner").strip() or "Owner"

    db = SessionLocal()
    try:
        existing = find_owner(db, business_code)
        if existing is not None:
            logger.info(
                "%s exists id=%s tenant_id=%s email=%s",
                BOOTSTRAP_PREFIX,
                existing.id,
                existing.tenant_id,
                existing.email,
            )
            return
        owner, created = upsert_owner(
            db,
            business_name=business_name,
            business_code=business_code,
            email=email,
            full_name=full_name,
            password=password,
            must_change_password=True,
        )
        logger.info(
            "%s %s id=%s tenant_id=%s email=%s",
            BOOTSTRAP_PREFIX,
            "created" if created else "updated",
            owner.id,
            owner.tenant_id,
            owner.email,
        )
    except Exception:
        logger.exception("%s ERROR bootstrap failed", BOOTSTRAP_PREFIX)
        raise
    finally:
        db.close()


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        apply_migrations(alembic_config_path=ALEMBIC_CONFIG_PATH)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        _bootstrap_owner_from_env()
    except Exception:
        logger.exception("[STARTUP] ERROR startup failed")
        raise


# Routers
app.include_router(auth_router)
app.include_router(links_router)
app.include_router(pin_router)
app.include_router(profile_router)
app.include_router(staff_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
