import pytest

from db.extensions import db
from models.coinTransaction import CoinTransaction
from models.escrow import Escrow
from models.experience import Experience
from models.ticket import Ticket
from services.errors import ExperienceNotJoinableError
from services.experience_service import ExperienceService
from services.join_service import JoinService
from services.ledger_service import LedgerService
from services.release_service import ReleaseService


def test_cancel_refunds_every_holder(make_user, make_experience):
    make_user("a", 150)
    make_user("c", 200)
    experience = make_experience(max_participants=3, coin_price=100)
    JoinService.join_experience(experience.id, "a")
    JoinService.join_experience(experience.id, "c")

    refunded = ExperienceService.cancel_experience(experience.id)

    assert sorted(refunded) == ["a", "c"]
    assert LedgerService.balance_of("a") == 150
    assert LedgerService.balance_of("c") == 200
    assert CoinTransaction.query.filter_by(type="refund").count() == 2
    escrow = db.session.get(Escrow, experience.id)
    assert escrow.released is True
    assert escrow.released_to == "refund"
    assert db.session.get(Experience, experience.id).status == "cancelled"
    assert {t.status for t in Ticket.query.all()} == {"used"}


def test_cancelled_experience_never_pays_host(make_user, make_experience):
    make_user("a", 100)
    experience = make_experience(max_participants=1, coin_price=100)
    JoinService.join_experience(experience.id, "a")
    ReleaseService.mark_ticket_started(experience.id, "a")

    ExperienceService.cancel_experience(experience.id)
    assert ReleaseService.release_escrow_if_threshold(experience.id, 1.0) is False
    assert LedgerService.balance_of("host") == 0


def test_cancel_twice_or_after_start_is_rejected(make_user, make_experience):
    make_user("a", 100)
    experience = make_experience(max_participants=1, coin_price=100)
    JoinService.join_experience(experience.id, "a")
    ReleaseService.mark_ticket_started(experience.id, "a")
    ReleaseService.release_escrow_if_threshold(experience.id, 1.0)

    with pytest.raises(ExperienceNotJoinableError):
        ExperienceService.cancel_experience(experience.id)

    draft = make_experience(publish=False)
    assert ExperienceService.cancel_experience(draft.id) == []
    with pytest.raises(ExperienceNotJoinableError):
        ExperienceService.cancel_experience(draft.id)


def test_publish_only_from_draft(make_experience):
    experience = make_experience()
    assert experience.status == "published"
    assert experience.chat_id
    with pytest.raises(ExperienceNotJoinableError):
        ExperienceService.publish_experience(experience.id)


def test_create_experience_validation(make_user):
    make_user("host", 0)
    with pytest.raises(ValueError):
        ExperienceService.create_experience("host", "Walk", 0, 10)
    with pytest.raises(ValueError):
        ExperienceService.create_experience("host", "Walk", 2, -5)

    experience = ExperienceService.create_experience("host", "Walk", 4, 25)
    assert experience.seats_remaining == 4
    assert experience.participants_started == 0
    assert experience.status == "draft"


def test_free_holders_are_not_reported_as_refunded(make_user, make_experience):
    make_user("a", 100)
    make_user("b", 100)
    paid = make_experience(max_participants=2, coin_price=40)
    free = make_experience(max_participants=2, coin_price=0)
    JoinService.join_experience(paid.id, "a")
    JoinService.join_experience(free.id, "b")

    assert ExperienceService.cancel_experience(paid.id) == ["a"]
    assert ExperienceService.cancel_experience(free.id) == []
    assert CoinTransaction.query.filter_by(type="refund").count() == 1
    assert Ticket.query.filter_by(user_id="b").one().status == "used"
