# services/reconcile_service.py
import logging

from db.atomic import run_atomic
from db.extensions import db
from models.user import User
from services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ReconcileService:
    """Keeps the display cache honest against the ledger fold."""

    @staticmethod
    def reconcile_user(user_id):
        def _reconcile():
            user = LedgerService.lock_user(user_id)
            cached = user.wallet_balance
            actual = LedgerService.balance_of(user_id)
            if cached == actual:
                return None
            user.wallet_balance = actual
            return cached, actual

        drift = run_atomic(_reconcile)
        if drift is not None:
            cached, actual = drift
            logger.warning("reconcile.drift_fixed user_id=%s cached=%s ledger=%s delta=%s",
                           user_id, cached, actual, actual - cached)
        return drift

    @staticmethod
    def reconcile_wallets(batch_size=500):
        """Check every user. Returns the uids whose cache was rewritten."""
        corrected = []
        user_ids = [row[0] for row in db.session.query(User.id).order_by(User.id).yield_per(batch_size)]
        for user_id in user_ids:
            if ReconcileService.reconcile_user(user_id) is not None:
                corrected.append(user_id)
        logger.info("reconcile.done checked=%s corrected=%s", len(user_ids), len(corrected))
        return corrected
