# models/ticket.py
from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from db.extensions import db
from .base import current_time_utc, generate_id

ACTIVE = 'active'
CHECKED_IN = 'checked_in'
USED = 'used'


class Ticket(db.Model):
    __tablename__ = 'tickets'

    id = Column(String(36), primary_key=True, default=generate_id)
    experience_id = Column(String(36), ForeignKey('experiences.id'), nullable=False)
    user_id = Column(String(128), ForeignKey('users.id'), nullable=False)
    ticket_code = Column(String(64), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=ACTIVE)
    started = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=current_time_utc, nullable=False)

    version = Column(Integer, nullable=False, default=1)

    experience = relationship('Experience', back_populates='tickets')

    __table_args__ = (
        UniqueConstraint('experience_id', 'user_id', name='uq_tickets_experience_user'),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Ticket ticket_code={self.ticket_code} user_id={self.user_id} status={self.status}>"

    def to_dict(self):
        return {
            'id': self.id,
            'experience_id': self.experience_id,
            'user_id': self.user_id,
            'ticket_id': self.ticket_code,
            'status': self.status,
            'started': self.started,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
