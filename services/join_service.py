# services/join_service.py
import uuid

from flask import current_app, g

from db.atomic import run_atomic
from db.extensions import db
from models.coinTransaction import JOIN_ESCROW
from models.ticket import Ticket, ACTIVE
from services.chat_service import ChatService
from services.errors import (
    AlreadyJoinedError,
    ExperienceNotJoinableError,
    InsufficientBalanceError,
    NoSeatsError,
)
from services.escrow_service import EscrowService
from services.ledger_service import LedgerService
from services.seat_service import SeatService
from utils.common import generate_ticket_code
from utils.realtime import emit_wallet_event, experience_room, wallet_room


class JoinService:

    @staticmethod
    def join_experience(experience_id, user_id, socketio=None):
        """
        Join an experience as one all-or-nothing unit.

        Debits the coin price, credits the escrow pool, takes a seat, issues a
        ticket and enrolls the user in the experience chat. Any failed
        precondition aborts with nothing written.

        Returns ``{"ticket_id": ..., "chat_id": ...}``.
        """
        cid = getattr(g, "cid", None) or str(uuid.uuid4())
        log = current_app.logger

        log.info("join_experience.start cid=%s experience_id=%s user_id=%s", cid, experience_id, user_id)

        try:
            result = run_atomic(JoinService._join_unit, experience_id, user_id, cid)
        except (ExperienceNotJoinableError, NoSeatsError, InsufficientBalanceError, AlreadyJoinedError) as e:
            log.warning("join_experience.rejected cid=%s experience_id=%s user_id=%s reason=%s",
                        cid, experience_id, user_id, e.code)
            raise

        log.info("join_experience.committed cid=%s experience_id=%s user_id=%s ticket_id=%s seats_remaining=%s",
                 cid, experience_id, user_id, result["ticket_id"], result["seats_remaining"])

        # Emit events (non-fatal)
        emit_wallet_event(
            socketio,
            "experience_updated",
            {
                "experience_id": experience_id,
                "user_id": user_id,
                "status": result["status"],
                "seats_remaining": result["seats_remaining"],
                "total_coins": result["escrow_total"],
            },
            room=experience_room(experience_id),
        )
        emit_wallet_event(
            socketio,
            "wallet_updated",
            {
                "user_id": user_id,
                "experience_id": experience_id,
                "ticket_id": result["ticket_id"],
                "wallet_balance": result["wallet_balance"],
                "amount": result["amount"],
                "type": JOIN_ESCROW,
            },
            room=wallet_room(user_id),
        )

        return {"ticket_id": result["ticket_id"], "chat_id": result["chat_id"]}

    @staticmethod
    def _join_unit(experience_id, user_id, cid):
        log = current_app.logger

        # STEP 1: Experience must be open with a free seat
        experience = SeatService.lock_experience(experience_id)
        if not experience.is_joinable:
            raise ExperienceNotJoinableError(
                f"Experience is not joinable (status={experience.status})",
                experience_id=experience_id, status=experience.status,
            )
        already = Ticket.query.filter_by(experience_id=experience_id, user_id=user_id).first()
        if already:
            raise AlreadyJoinedError(
                "You already joined this experience",
                experience_id=experience_id, ticket_id=already.ticket_code,
            )

        if experience.seats_remaining <= 0:
            raise NoSeatsError("No seats left", experience_id=experience_id)

        coin_price = experience.coin_price or 0
        chat_id = experience.chat_id

        # STEP 2: Balance from the ledger fold, on a locked user row
        user = LedgerService.lock_user(user_id)
        balance = LedgerService.balance_of(user_id)
        if balance < coin_price:
            raise InsufficientBalanceError(
                "Insufficient balance",
                balance=balance, coin_price=coin_price,
            )

        # STEP 3: Current escrow pool
        escrow = EscrowService.get_escrow(experience_id, for_update=True)
        log.debug("join_experience.read cid=%s balance=%s coin_price=%s escrow_total=%s",
                  cid, balance, coin_price, escrow.total_coins if escrow else 0)

        # STEP 4: Debit
        ticket_code = generate_ticket_code(user_id)
        LedgerService.append_transaction(
            user_id, JOIN_ESCROW, -coin_price,
            experience_id=experience_id, ticket_id=ticket_code,
        )

        # STEP 5: Escrow credit
        escrow_total = EscrowService.credit_escrow(experience_id, coin_price)

        # STEP 6: Seat
        seats_remaining = SeatService.reserve_seat(experience_id)

        # STEP 7: Cached balance
        wallet_balance = LedgerService.refresh_cached_balance(user)

        # STEP 8: Ticket
        db.session.add(Ticket(
            experience_id=experience_id,
            user_id=user_id,
            ticket_code=ticket_code,
            status=ACTIVE,
        ))

        # STEP 9: Chat enrollment
        if chat_id:
            ChatService.enroll_member(chat_id, user_id)

        return {
            "ticket_id": ticket_code,
            "chat_id": chat_id,
            "amount": -coin_price,
            "escrow_total": escrow_total,
            "seats_remaining": seats_remaining,
            "status": experience.status,
            "wallet_balance": wallet_balance,
        }
