# backend/app/repositories/room_repository.py
"""Room lookups needed when a booking is requested."""

import logging

from sqlalchemy.orm import Session

from ..models.room import Room
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class RoomRepository(BaseRepository[Room]):
    """Repository for Room data access."""

    def __init__(self, db: Session):
        super().__init__(db, Room)
