"""Family Menu Server - FastAPI Application Entry Point."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from familymenu.config import settings
from familymenu.database import check_database_health, init_db
from familymenu.services.errors import DomainError

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize the database on startup."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    logger.info("%s %s started", settings.server_name, VERSION)
    yield


app = FastAPI(
    title="Menu Familiar",
    description="Family meal planning: recipes, weekly menus, comments and stars",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error handling ---

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report schema failures per field, without the 'body'/'query' prefix."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = err.get("msg", "")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc), "message": message})
    return JSONResponse(
        status_code=400,
        content={"message": "Datos inválidos", "error": "VALIDATION_ERROR", "errors": errors},
    )


# --- Register API routers ---
from familymenu.api.auth import router as auth_router  # noqa: E402
from familymenu.api.family import router as family_router  # noqa: E402
from familymenu.api.recipes import router as recipes_router  # noqa: E402
from familymenu.api.meal_plans import router as meal_plans_router  # noqa: E402
from familymenu.api.comments import router as comments_router  # noqa: E402
from familymenu.api.achievements import router as achievements_router  # noqa: E402

API_PREFIX = "/api"

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(family_router, prefix=API_PREFIX)
app.include_router(recipes_router, prefix=API_PREFIX)
app.include_router(meal_plans_router, prefix=API_PREFIX)
app.include_router(comments_router, prefix=API_PREFIX)
app.include_router(achievements_router, prefix=API_PREFIX)


def _health_payload() -> tuple[int, dict]:
    database = check_database_health()
    healthy = database["healthy"]
    return (200 if healthy else 503), {
        "status": "ok" if healthy else "unhealthy",
        "name": settings.server_name,
        "version": VERSION,
        "database": database,
        "uptime": round(time.monotonic() - STARTED_AT, 1),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/")
def root():
    """Health check / server info."""
    code, payload = _health_payload()
    return JSONResponse(status_code=code, content=payload)


@app.get("/health")
def health():
    code, payload = _health_payload()
    return JSONResponse(status_code=code, content=payload)


def run() -> None:
    import uvicorn

    uvicorn.run("familymenu.main:app", host=settings.host, port=settings.port)
