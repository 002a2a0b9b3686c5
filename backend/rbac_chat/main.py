import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from rbac_chat.api.routes import router
from rbac_chat.config import API_VERSION, CORS_ORIGINS, LOG_LEVEL
from rbac_chat.db.models import Base
from rbac_chat.db.session import engine
from rbac_chat.errors import RegistryError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="RBAC Policy Assistant",
    version=API_VERSION,
)

# Middleware FIRST
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def no_store(request: Request, call_next):
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RegistryError)
async def registry_unavailable(request: Request, exc: RegistryError):
    logger.error("Schema registry unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# Routes AFTER middleware
app.include_router(router)


@app.on_event("startup")
def startup():
    retries = 5
    delay = 2

    for attempt in range(retries):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database connected")
            return
        except OperationalError:
            logger.warning("Waiting for database... (%d/%d)", attempt + 1, retries)
            time.sleep(delay)

    # Do not crash the app
    logger.error("Database not ready, running without persistence")
