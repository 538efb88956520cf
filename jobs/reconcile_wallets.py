import logging
import time
from datetime import datetime, timedelta

from db.extensions import db
from services.reconcile_service import ReconcileService

# Logging setup
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def run_reconciliation():
    """One pass over every wallet cache. Errors are logged, the loop keeps going."""
    try:
        corrected = ReconcileService.reconcile_wallets()
        if corrected:
            logging.warning("Corrected %s wallet caches: %s", len(corrected), corrected)
        return corrected
    except Exception as e:
        db.session.rollback()
        logging.error("Wallet reconciliation failed: %s", e)
        return None
    finally:
        db.session.remove()


def main_loop(interval_seconds=300, duration_days=30):
    from app import create_app

    app, _ = create_app()

    with app.app_context():
        end_time = datetime.utcnow() + timedelta(days=duration_days)
        logging.info("Starting wallet reconciliation loop for %s days...", duration_days)

        while datetime.utcnow() < end_time:
            run_reconciliation()
            time.sleep(interval_seconds)

        logging.info("Wallet reconciliation loop finished after %s days.", duration_days)


if __name__ == "__main__":
    main_loop()
