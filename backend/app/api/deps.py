from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.session import SessionLocal
from app.services.generator_client import GeminiScheduleGenerator, ScheduleGenerator


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_schedule_generator(settings: Settings = Depends(get_settings)) -> ScheduleGenerator:
    return GeminiScheduleGenerator(settings)
