import logging
import time
from datetime import datetime, timedelta

from flask import current_app

from db.extensions import db
from models.experience import Experience, JOINABLE_STATUSES
from services.release_service import ReleaseService, started_threshold

# Logging setup
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def attempt_release(experience_id, min_started_ratio=None):
    """RQ entry point: one release attempt in a fresh app context."""
    from app import create_app

    app, _ = create_app()
    with app.app_context():
        try:
            released = ReleaseService.release_escrow_if_threshold(
                experience_id, min_started_ratio,
                socketio=app.extensions.get("socketio"),
            )
            logging.info("attempt_release experience_id=%s released=%s", experience_id, released)
            return released
        finally:
            db.session.remove()


def release_eligible_escrows(min_started_ratio=None):
    """
    Release every open experience whose started count already meets the threshold.
    Returns the ids that were released in this pass.
    """
    if min_started_ratio is None:
        min_started_ratio = current_app.config.get("RELEASE_MIN_STARTED_RATIO", 1.0)

    candidates = (
        db.session.query(Experience.id, Experience.max_participants, Experience.participants_started)
        .filter(Experience.status.in_(JOINABLE_STATUSES))
        .all()
    )
    db.session.commit()

    released_ids = []
    for experience_id, max_participants, participants_started in candidates:
        if (participants_started or 0) < started_threshold(max_participants, min_started_ratio):
            logging.debug("Skipping experience_id=%s - below threshold", experience_id)
            continue
        try:
            if ReleaseService.release_escrow_if_threshold(experience_id, min_started_ratio):
                released_ids.append(experience_id)
        except Exception as e:
            logging.error("Escrow release failed for experience_id=%s: %s", experience_id, e)

    logging.info("Released %s escrow pools.", len(released_ids))
    return released_ids


def main_loop(interval_seconds=30, duration_days=30):
    from app import create_app

    app, _ = create_app()

    with app.app_context():
        end_time = datetime.utcnow() + timedelta(days=duration_days)
        logging.info("Starting escrow release sweep for %s days...", duration_days)

        while datetime.utcnow() < end_time:
            try:
                release_eligible_escrows()
            finally:
                db.session.remove()
            time.sleep(interval_seconds)

        logging.info("Escrow release sweep finished after %s days.", duration_days)


if __name__ == "__main__":
    main_loop()
