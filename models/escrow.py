# models/escrow.py
from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, CheckConstraint
from db.extensions import db

RELEASED_TO_HOST = "host"
RELEASED_TO_REFUND = "refund"


class Escrow(db.Model):
    __tablename__ = 'escrows'

    experience_id = Column(String(36), ForeignKey('experiences.id'), primary_key=True)
    total_coins = Column(Integer, nullable=False, default=0)
    released = Column(Boolean, nullable=False, default=False)
    released_at = Column(DateTime(timezone=True), nullable=True)
    # host payout or cancellation refund; null while held
    released_to = Column(String(16), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint('total_coins >= 0', name='ck_escrows_total_non_negative'),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Escrow experience_id={self.experience_id} total={self.total_coins} released={self.released}>"

    def to_dict(self):
        return {
            'experience_id': self.experience_id,
            'total_coins': self.total_coins,
            'released': self.released,
            'released_at': self.released_at.isoformat() if self.released_at else None,
            'released_to': self.released_to,
        }
