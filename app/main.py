import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.db.init_db import create_database
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.config import settings
from app.api.v1.router import api_router
from app.utils.exceptions import BookingError
from app.utils.timeslots import disable_past_slots

logger = logging.getLogger(__name__)


async def _slot_cleanup_loop() -> None:
    """Disable service slots whose start time has passed, forever."""
    while True:
        db = SessionLocal()
        try:
            count = disable_past_slots(db)
            if count:
                logger.info("Disabled %d past service slot(s).", count)
        except Exception:
            logger.exception("Past-slot cleanup failed; retrying in %ds.", settings.SLOT_CLEANUP_INTERVAL_SECONDS)
            db.rollback()
        finally:
            db.close()
        await asyncio.sleep(settings.SLOT_CLEANUP_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_database()
    Base.metadata.create_all(bind=engine)

    cleanup_task = asyncio.create_task(_slot_cleanup_loop())
    logger.info("%s started, slot cleanup every %ds.", settings.PROJECT_NAME, settings.SLOT_CLEANUP_INTERVAL_SECONDS)
    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    # Same body shape as HTTPException: {"detail": {error, message, details}}
    if exc.status_code == 409:
        logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
def read_root():
    return {"service": settings.PROJECT_NAME, "status": "ok"}
