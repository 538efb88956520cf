# services/escrow_service.py
from datetime import datetime

import pytz

from db.extensions import db
from models.escrow import Escrow, RELEASED_TO_HOST
from services.errors import EscrowReleasedError


class EscrowService:

    @staticmethod
    def get_escrow(experience_id, for_update=False):
        if for_update:
            return db.session.get(Escrow, experience_id, with_for_update=True, populate_existing=True)
        return db.session.get(Escrow, experience_id)

    @staticmethod
    def credit_escrow(experience_id, amount):
        """Add ``amount`` to the pool, creating it on first join. Returns the new total."""
        if amount < 0:
            raise ValueError("Escrow credit must be non-negative")

        escrow = EscrowService.get_escrow(experience_id, for_update=True)
        if escrow is None:
            escrow = Escrow(experience_id=experience_id, total_coins=0, released=False)
            db.session.add(escrow)
        elif escrow.released:
            raise EscrowReleasedError(
                f"Escrow for experience {experience_id} is already released",
                experience_id=experience_id,
            )

        escrow.total_coins += amount
        return escrow.total_coins

    @staticmethod
    def mark_released(experience_id, released_to=RELEASED_TO_HOST):
        escrow = EscrowService.get_escrow(experience_id, for_update=True)
        if escrow is None or escrow.released:
            raise EscrowReleasedError(
                f"Escrow for experience {experience_id} cannot be released",
                experience_id=experience_id,
            )
        escrow.released = True
        escrow.released_at = datetime.now(pytz.utc)
        escrow.released_to = released_to
