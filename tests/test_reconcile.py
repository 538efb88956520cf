from db.extensions import db
from jobs.reconcile_wallets import run_reconciliation
from jobs.release_escrow import release_eligible_escrows
from models.experience import Experience
from models.user import User
from services.join_service import JoinService
from services.ledger_service import LedgerService
from services.reconcile_service import ReconcileService
from services.release_service import ReleaseService


def test_reconcile_rewrites_drifted_cache(make_user):
    make_user("a", 300)
    make_user("b", 100)
    user = db.session.get(User, "a")
    user.wallet_balance = 9999
    db.session.commit()

    assert ReconcileService.reconcile_wallets() == ["a"]
    assert db.session.get(User, "a").wallet_balance == 300
    assert ReconcileService.reconcile_wallets() == []


def test_reconciliation_job_pass(make_user):
    make_user("a", 40)
    db.session.get(User, "a").wallet_balance = 0
    db.session.commit()

    assert run_reconciliation() == ["a"]
    assert db.session.get(User, "a").wallet_balance == LedgerService.balance_of("a")


def test_release_sweep_picks_up_eligible_experiences(make_user, make_experience):
    make_user("a", 200)
    ready = make_experience(max_participants=1, coin_price=60)
    waiting = make_experience(max_participants=2, coin_price=60)
    JoinService.join_experience(ready.id, "a")
    JoinService.join_experience(waiting.id, "a")
    ReleaseService.mark_ticket_started(ready.id, "a")

    assert release_eligible_escrows(1.0) == [ready.id]
    assert db.session.get(Experience, ready.id).status == "started"
    assert db.session.get(Experience, waiting.id).status == "published"
    assert LedgerService.balance_of("host") == 60
