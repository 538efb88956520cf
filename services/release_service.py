# services/release_service.py
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_CEILING
import uuid

from flask import current_app, g
import pytz

from db.atomic import run_atomic
from models.coinTransaction import ESCROW_RELEASE
from models.experience import STARTED, DRAFT, CANCELLED, COMPLETED
from models.ticket import Ticket, CHECKED_IN
from services.errors import ExperienceNotJoinableError, NotFoundError
from services.escrow_service import EscrowService
from services.ledger_service import LedgerService
from services.seat_service import SeatService
from utils.realtime import emit_wallet_event, experience_room, wallet_room


def parse_started_ratio(min_started_ratio):
    """Return the ratio as a Decimal in (0, 1], or raise ValueError."""
    if isinstance(min_started_ratio, bool):
        raise ValueError("min_started_ratio must be a number")
    try:
        ratio = Decimal(str(min_started_ratio))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError("min_started_ratio must be a number") from None
    if not ratio.is_finite() or ratio <= 0 or ratio > 1:
        raise ValueError("min_started_ratio must be in (0, 1]")
    return ratio


def started_threshold(max_participants, min_started_ratio):
    """ceil(max_participants * ratio), computed in decimal so 10 * 0.3 stays 3."""
    ratio = parse_started_ratio(min_started_ratio)
    return int((Decimal(max_participants) * ratio).to_integral_value(rounding=ROUND_CEILING))


class ReleaseService:

    @staticmethod
    def mark_ticket_started(experience_id, user_id, socketio=None):
        """
        Confirm a participant's arrival.

        Flips the ticket's started flag and bumps the experience's started
        counter in one unit. Confirming the same ticket twice is a no-op.
        """
        cid = getattr(g, "cid", None) or str(uuid.uuid4())
        log = current_app.logger

        result = run_atomic(ReleaseService._mark_started_unit, experience_id, user_id)
        log.info("mark_ticket_started.committed cid=%s experience_id=%s user_id=%s changed=%s participants_started=%s",
                 cid, experience_id, user_id, result["changed"], result["participants_started"])

        if result["changed"]:
            emit_wallet_event(
                socketio,
                "experience_updated",
                {
                    "experience_id": experience_id,
                    "user_id": user_id,
                    "ticket_id": result["ticket"]["ticket_id"],
                    "status": result["status"],
                    "participants_started": result["participants_started"],
                },
                room=experience_room(experience_id),
            )
        return result["ticket"]

    @staticmethod
    def _mark_started_unit(experience_id, user_id):
        ticket = Ticket.query.filter_by(experience_id=experience_id, user_id=user_id)\
            .with_for_update()\
            .populate_existing()\
            .first()
        if not ticket:
            raise NotFoundError("Ticket not found", experience_id=experience_id, user_id=user_id)

        experience = SeatService.lock_experience(experience_id)
        if experience.status in (DRAFT, CANCELLED, COMPLETED):
            raise ExperienceNotJoinableError(
                f"Experience cannot be started (status={experience.status})",
                experience_id=experience_id, status=experience.status,
            )

        changed = False
        if not ticket.started:
            ticket.started = True
            ticket.started_at = datetime.now(pytz.utc)
            ticket.status = CHECKED_IN
            experience.participants_started = (experience.participants_started or 0) + 1
            changed = True

        return {
            "changed": changed,
            "participants_started": experience.participants_started,
            "status": experience.status,
            "ticket": ticket.to_dict(),
        }

    @staticmethod
    def release_escrow_if_threshold(experience_id, min_started_ratio=None, socketio=None):
        """
        Pay the escrow pool to the host once enough participants have started.

        Returns True when the release ran, False when a guard short-circuited
        it (wrong status, threshold not met, no pool, already released).
        """
        if min_started_ratio is None:
            min_started_ratio = current_app.config.get("RELEASE_MIN_STARTED_RATIO", 1.0)
        cid = getattr(g, "cid", None) or str(uuid.uuid4())
        log = current_app.logger

        result = run_atomic(ReleaseService._release_unit, experience_id, min_started_ratio)
        if not result["released"]:
            log.info("release_escrow.skipped cid=%s experience_id=%s reason=%s",
                     cid, experience_id, result["reason"])
            return False

        log.info("release_escrow.committed cid=%s experience_id=%s host_id=%s amount=%s",
                 cid, experience_id, result["host_id"], result["amount"])

        emit_wallet_event(
            socketio,
            "experience_updated",
            {
                "experience_id": experience_id,
                "host_id": result["host_id"],
                "status": STARTED,
                "total_coins": result["amount"],
                "released": True,
            },
            room=experience_room(experience_id),
        )
        emit_wallet_event(
            socketio,
            "wallet_updated",
            {
                "user_id": result["host_id"],
                "experience_id": experience_id,
                "wallet_balance": result["wallet_balance"],
                "amount": result["amount"],
                "type": ESCROW_RELEASE,
            },
            room=wallet_room(result["host_id"]),
        )
        return True

    @staticmethod
    def _release_unit(experience_id, min_started_ratio):
        # STEP 1: Status guard, re-checked under the row lock
        experience = SeatService.lock_experience(experience_id)
        if not experience.is_joinable:
            return {"released": False, "reason": f"status_{experience.status}"}

        # STEP 2: Threshold
        threshold = started_threshold(experience.max_participants, min_started_ratio)
        if (experience.participants_started or 0) < threshold:
            return {"released": False, "reason": "below_threshold"}

        # STEP 3: Escrow
        escrow = EscrowService.get_escrow(experience_id, for_update=True)
        if escrow is None:
            return {"released": False, "reason": "no_escrow"}
        if escrow.released:
            return {"released": False, "reason": "already_released"}
        amount = escrow.total_coins

        # STEP 4-5: Host credit
        host = LedgerService.lock_user(experience.host_id)
        if amount > 0:
            LedgerService.append_transaction(
                host.id, ESCROW_RELEASE, amount, experience_id=experience_id,
            )
        wallet_balance = LedgerService.refresh_cached_balance(host)

        # STEP 6-7: Close the pool and start the experience
        EscrowService.mark_released(experience_id)
        experience.status = STARTED

        return {
            "released": True,
            "host_id": host.id,
            "amount": amount,
            "wallet_balance": wallet_balance,
        }
