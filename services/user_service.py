# services/user_service.py
from flask import current_app

from db.atomic import run_atomic
from db.extensions import db
from models.coinTransaction import SIGNUP_BONUS
from models.ticket import Ticket
from models.user import User
from services.errors import NotFoundError
from services.ledger_service import LedgerService


class UserService:

    @staticmethod
    def get_user(user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    @staticmethod
    def register_user(user_id, display_name=None, signup_bonus=None):
        """
        Create the user record on first sign-in and mint the signup bonus.

        Registering an existing uid returns it untouched, so the bonus is
        minted once per user.
        """
        if not user_id:
            raise ValueError("user_id is required")
        if signup_bonus is None:
            signup_bonus = current_app.config.get("SIGNUP_BONUS_COINS", 500)

        def _register():
            existing = db.session.get(User, user_id)
            if existing:
                return False
            user = User(id=user_id, display_name=display_name, wallet_balance=0)
            db.session.add(user)
            db.session.flush()
            if signup_bonus:
                LedgerService.append_transaction(user_id, SIGNUP_BONUS, signup_bonus)
            LedgerService.refresh_cached_balance(user)
            return True

        created = run_atomic(_register)
        current_app.logger.info("register_user.done user_id=%s created=%s bonus=%s",
                                user_id, created, signup_bonus if created else 0)
        return UserService.get_user(user_id), created

    @staticmethod
    def get_wallet(user_id, limit=100):
        user = UserService.get_user(user_id)
        transactions = LedgerService.get_transactions(user_id, limit=limit)
        return {
            'uid': user.id,
            'balance': LedgerService.balance_of(user_id),
            'cached_balance': user.wallet_balance,
            'transactions': [t.to_dict() for t in transactions],
        }

    @staticmethod
    def get_ticket(experience_id, user_id):
        ticket = Ticket.query.filter_by(experience_id=experience_id, user_id=user_id).first()
        if not ticket:
            raise NotFoundError("Ticket not found", experience_id=experience_id, user_id=user_id)
        return ticket
