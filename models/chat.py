# models/chat.py
from sqlalchemy import Column, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from db.extensions import db
from .base import current_time_utc, generate_id


class Chat(db.Model):
    __tablename__ = 'chats'

    id = Column(String(36), primary_key=True, default=generate_id)
    experience_id = Column(String(36), ForeignKey('experiences.id'), nullable=True)
    type = Column(String(20), nullable=False, default='group')
    title = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=current_time_utc, nullable=False)

    members = relationship('ChatMember', back_populates='chat', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Chat id={self.id} experience_id={self.experience_id}>"


class ChatMember(db.Model):
    __tablename__ = 'chat_members'

    id = Column(String(36), primary_key=True, default=generate_id)
    chat_id = Column(String(36), ForeignKey('chats.id'), nullable=False)
    user_id = Column(String(128), ForeignKey('users.id'), nullable=False)
    joined_at = Column(DateTime(timezone=True), default=current_time_utc, nullable=False)

    chat = relationship('Chat', back_populates='members')

    __table_args__ = (
        UniqueConstraint('chat_id', 'user_id', name='uq_chat_members_chat_user'),
    )
