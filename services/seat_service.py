# services/seat_service.py
from flask import current_app

from db.extensions import db
from models.experience import Experience, FULL
from services.errors import NotFoundError, NoSeatsError


class SeatService:

    @staticmethod
    def lock_experience(experience_id):
        experience = db.session.get(Experience, experience_id, with_for_update=True, populate_existing=True)
        if not experience:
            raise NotFoundError(f"Experience {experience_id} not found", experience_id=experience_id)
        return experience

    @staticmethod
    def reserve_seat(experience_id):
        """
        Take one seat and flip the experience to full on the last one.

        The row is read FOR UPDATE and its version is checked on flush, so a
        concurrent reservation from a stale read fails the whole unit instead
        of overselling.
        """
        experience = SeatService.lock_experience(experience_id)
        if experience.seats_remaining is None or experience.seats_remaining <= 0:
            raise NoSeatsError("No seats left", experience_id=experience.id)

        experience.seats_remaining -= 1
        if experience.seats_remaining == 0:
            experience.status = FULL

        current_app.logger.debug("seat.reserved experience_id=%s seats_remaining=%s status=%s",
                                 experience.id, experience.seats_remaining, experience.status)
        return experience.seats_remaining
