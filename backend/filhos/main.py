"""Module: main."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filhos.api.v1.api import api_router
from filhos.core.config import settings
from filhos.core.log import configure_logging
from filhos.db.init_db import init_db
from filhos.db.session import SessionLocal, engine
from filhos.services.vaccine_catalog import initialize_catalog
from filhos.services.vaccine_notifications import VaccineNotificationScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(engine)

    db = SessionLocal()
    try:
        initialize_catalog(db)
    finally:
        db.close()

    scheduler = VaccineNotificationScheduler(SessionLocal, settings)
    if settings.notifications_enabled:
        scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()


configure_logging(settings.log_level)

app = FastAPI(title="Filhos API", version="0.1.0", lifespan=lifespan)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
