# models/experience.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from db.extensions import db
from .base import current_time_utc, generate_id

DRAFT = 'draft'
PUBLISHED = 'published'
FULL = 'full'
STARTED = 'started'
COMPLETED = 'completed'
CANCELLED = 'cancelled'

EXPERIENCE_STATUSES = (DRAFT, PUBLISHED, FULL, STARTED, COMPLETED, CANCELLED)
JOINABLE_STATUSES = (PUBLISHED, FULL)


class Experience(db.Model):
    __tablename__ = 'experiences'

    id = Column(String(36), primary_key=True, default=generate_id)
    host_id = Column(String(128), ForeignKey('users.id'), nullable=False)
    title = Column(String(255), nullable=False)
    max_participants = Column(Integer, nullable=False)
    seats_remaining = Column(Integer, nullable=False)
    coin_price = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=DRAFT)
    participants_started = Column(Integer, nullable=False, default=0)
    chat_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=current_time_utc, nullable=False)

    version = Column(Integer, nullable=False, default=1)

    host = relationship('User')
    tickets = relationship('Ticket', back_populates='experience', order_by='Ticket.created_at')

    __table_args__ = (
        CheckConstraint('seats_remaining >= 0', name='ck_experiences_seats_non_negative'),
        CheckConstraint('seats_remaining <= max_participants', name='ck_experiences_seats_lte_max'),
        CheckConstraint('max_participants > 0', name='ck_experiences_max_positive'),
        CheckConstraint('coin_price >= 0', name='ck_experiences_price_non_negative'),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def is_joinable(self):
        return self.status in JOINABLE_STATUSES

    def __repr__(self):
        return f"<Experience id={self.id} status={self.status} seats={self.seats_remaining}/{self.max_participants}>"

    def to_dict(self):
        return {
            'id': self.id,
            'host_id': self.host_id,
            'title': self.title,
            'max_participants': self.max_participants,
            'seats_remaining': self.seats_remaining,
            'coin_price': self.coin_price,
            'status': self.status,
            'participants_started': self.participants_started,
            'chat_id': self.chat_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
