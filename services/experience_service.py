# services/experience_service.py
import uuid

from flask import current_app, g

from db.atomic import run_atomic
from db.extensions import db
from models.coinTransaction import CoinTransaction, JOIN_ESCROW, REFUND
from models.escrow import RELEASED_TO_REFUND
from models.experience import Experience, DRAFT, PUBLISHED, FULL, CANCELLED
from models.ticket import Ticket, USED
from models.user import User
from services.chat_service import ChatService
from services.errors import ExperienceNotJoinableError, NotFoundError
from services.escrow_service import EscrowService
from services.ledger_service import LedgerService
from services.seat_service import SeatService
from utils.realtime import emit_wallet_event, experience_room, wallet_room

CANCELLABLE_STATUSES = (DRAFT, PUBLISHED, FULL)


class ExperienceService:

    @staticmethod
    def get_experience(experience_id):
        experience = db.session.get(Experience, experience_id)
        if not experience:
            raise NotFoundError(f"Experience {experience_id} not found", experience_id=experience_id)
        return experience

    @staticmethod
    def get_experience_view(experience_id):
        experience = ExperienceService.get_experience(experience_id)
        escrow = EscrowService.get_escrow(experience_id)
        data = experience.to_dict()
        data['escrow'] = escrow.to_dict() if escrow else None
        return data

    @staticmethod
    def create_experience(host_id, title, max_participants, coin_price):
        """Create a draft with every seat free and nobody started."""
        if not isinstance(max_participants, int) or isinstance(max_participants, bool) or max_participants <= 0:
            raise ValueError("max_participants must be a positive integer")
        if not isinstance(coin_price, int) or isinstance(coin_price, bool) or coin_price < 0:
            raise ValueError("coin_price must be a non-negative integer")
        if not title:
            raise ValueError("title is required")

        def _create():
            if db.session.get(User, host_id) is None:
                raise NotFoundError(f"User {host_id} not found", user_id=host_id)
            experience = Experience(
                host_id=host_id,
                title=title,
                max_participants=max_participants,
                seats_remaining=max_participants,
                coin_price=coin_price,
                status=DRAFT,
                participants_started=0,
            )
            db.session.add(experience)
            db.session.flush()
            return experience.id

        experience_id = run_atomic(_create)
        current_app.logger.info("create_experience.committed experience_id=%s host_id=%s max=%s price=%s",
                                experience_id, host_id, max_participants, coin_price)
        return ExperienceService.get_experience(experience_id)

    @staticmethod
    def publish_experience(experience_id):
        """Open a draft for joining and create its group chat with the host in it."""

        def _publish():
            experience = SeatService.lock_experience(experience_id)
            if experience.status != DRAFT:
                raise ExperienceNotJoinableError(
                    f"Only draft experiences can be published (status={experience.status})",
                    experience_id=experience_id, status=experience.status,
                )
            if not experience.chat_id:
                experience.chat_id = ChatService.create_group_chat_for_experience(
                    experience_id, experience.title, experience.host_id
                )
            experience.status = PUBLISHED
            return experience.chat_id

        chat_id = run_atomic(_publish)
        current_app.logger.info("publish_experience.committed experience_id=%s chat_id=%s",
                                experience_id, chat_id)
        return ExperienceService.get_experience(experience_id)

    @staticmethod
    def cancel_experience(experience_id, socketio=None):
        """
        Cancel an experience that has not started and refund every ticket holder.

        Each holder gets back exactly what their join debited. The pool is
        closed so it can never be released to the host afterwards.
        Returns the list of refunded user ids.
        """
        cid = getattr(g, "cid", None) or str(uuid.uuid4())
        log = current_app.logger

        refunds = run_atomic(ExperienceService._cancel_unit, experience_id)
        log.info("cancel_experience.committed cid=%s experience_id=%s refunds=%s",
                 cid, experience_id, len(refunds))

        emit_wallet_event(
            socketio,
            "experience_updated",
            {"experience_id": experience_id, "status": CANCELLED},
            room=experience_room(experience_id),
        )
        for refund in refunds:
            emit_wallet_event(
                socketio,
                "wallet_updated",
                {
                    "user_id": refund["user_id"],
                    "experience_id": experience_id,
                    "wallet_balance": refund["wallet_balance"],
                    "amount": refund["amount"],
                    "type": REFUND,
                },
                room=wallet_room(refund["user_id"]),
            )
        return [r["user_id"] for r in refunds if r["amount"] > 0]

    @staticmethod
    def _cancel_unit(experience_id):
        experience = SeatService.lock_experience(experience_id)
        if experience.status not in CANCELLABLE_STATUSES:
            raise ExperienceNotJoinableError(
                f"Experience cannot be cancelled (status={experience.status})",
                experience_id=experience_id, status=experience.status,
            )

        escrow = EscrowService.get_escrow(experience_id, for_update=True)
        refunds = []
        if escrow is not None and not escrow.released:
            tickets = Ticket.query.filter_by(experience_id=experience_id)\
                .order_by(Ticket.created_at)\
                .all()
            for ticket in tickets:
                debit = CoinTransaction.query.filter_by(
                    user_id=ticket.user_id,
                    experience_id=experience_id,
                    ticket_id=ticket.ticket_code,
                    type=JOIN_ESCROW,
                ).first()
                amount = -debit.amount if debit else 0
                user = LedgerService.lock_user(ticket.user_id)
                if amount > 0:
                    LedgerService.append_transaction(
                        user.id, REFUND, amount,
                        experience_id=experience_id, ticket_id=ticket.ticket_code,
                    )
                wallet_balance = LedgerService.refresh_cached_balance(user)
                ticket.status = USED
                refunds.append({"user_id": user.id, "amount": amount, "wallet_balance": wallet_balance})

            EscrowService.mark_released(experience_id, released_to=RELEASED_TO_REFUND)

        experience.status = CANCELLED
        return refunds
