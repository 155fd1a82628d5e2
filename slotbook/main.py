# slotbook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from slotbook.config import get_settings
from slotbook.db import create_db_and_tables
from slotbook.errors import BookingError
from slotbook.routers import (
    accounts_routes,
    appointments_routes,
    businesses_routes,
    reschedules_routes,
)

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("slotbook started")
    yield


app = FastAPI(title="slotbook", lifespan=lifespan)

app.include_router(accounts_routes.router)
app.include_router(businesses_routes.router)
app.include_router(appointments_routes.router)
app.include_router(reschedules_routes.router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}
