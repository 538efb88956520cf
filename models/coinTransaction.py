# models/coinTransaction.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Index, event
from db.extensions import db
from .base import current_time_utc, generate_id

SIGNUP_BONUS = 'signup_bonus'
JOIN_ESCROW = 'join_escrow'
ESCROW_RELEASE = 'escrow_release'
REFUND = 'refund'

TRANSACTION_TYPES = (SIGNUP_BONUS, JOIN_ESCROW, ESCROW_RELEASE, REFUND)


class CoinTransaction(db.Model):
    __tablename__ = 'coin_transactions'

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey('users.id'), nullable=False)
    type = Column(String(32), nullable=False)
    amount = Column(Integer, nullable=False)  # +500 signup, -100 join
    experience_id = Column(String(36), ForeignKey('experiences.id'), nullable=True)
    ticket_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=current_time_utc, nullable=False)

    __table_args__ = (
        Index('ix_coin_transactions_user_created', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f"<CoinTransaction user_id={self.user_id} type={self.type} amount={self.amount}>"

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'amount': self.amount,
            'experience_id': self.experience_id,
            'ticket_id': self.ticket_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class LedgerImmutableError(RuntimeError):
    pass


@event.listens_for(CoinTransaction, "before_update")
def _reject_update(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger row {target.id} cannot be updated")


@event.listens_for(CoinTransaction, "before_delete")
def _reject_delete(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger row {target.id} cannot be deleted")
