# services/ledger_service.py
from flask import current_app
from sqlalchemy import func

from db.extensions import db
from models.coinTransaction import CoinTransaction, TRANSACTION_TYPES
from models.user import User
from services.errors import NotFoundError


class LedgerService:
    """Append-only coin ledger. A balance is the sum of a user's rows."""

    @staticmethod
    def append_transaction(user_id, type, amount, experience_id=None, ticket_id=None):
        """
        Stage one signed ledger row on the current session.

        Must be called inside ``run_atomic`` together with the cache write that
        goes with it. Returns the new transaction id.
        """
        if type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {type}")
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise ValueError("Transaction amount must be an integer number of coins")

        txn = CoinTransaction(
            user_id=user_id,
            type=type,
            amount=amount,
            experience_id=experience_id,
            ticket_id=ticket_id,
        )
        db.session.add(txn)
        db.session.flush()
        current_app.logger.debug("ledger.append user_id=%s type=%s amount=%s txn_id=%s",
                                 user_id, type, amount, txn.id)
        return txn.id

    @staticmethod
    def balance_of(user_id):
        total = db.session.query(func.coalesce(func.sum(CoinTransaction.amount), 0)).filter(
            CoinTransaction.user_id == user_id
        ).scalar()
        return int(total or 0)

    @staticmethod
    def get_transactions(user_id, limit=100):
        return CoinTransaction.query.filter_by(user_id=user_id)\
            .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())\
            .limit(limit)\
            .all()

    @staticmethod
    def lock_user(user_id):
        user = db.session.get(User, user_id, with_for_update=True, populate_existing=True)
        if not user:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    @staticmethod
    def refresh_cached_balance(user):
        """Rewrite the display cache from the ledger fold. Bumps the row version."""
        db.session.flush()
        user.wallet_balance = LedgerService.balance_of(user.id)
        return user.wallet_balance
