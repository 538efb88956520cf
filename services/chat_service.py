# services/chat_service.py
from flask import current_app

from db.extensions import db
from models.chat import Chat, ChatMember


class ChatService:

    @staticmethod
    def create_group_chat_for_experience(experience_id, title, host_id):
        """Stage a group chat with the host as first member. Returns the chat id."""
        chat = Chat(experience_id=experience_id, type='group', title=title)
        db.session.add(chat)
        db.session.flush()
        db.session.add(ChatMember(chat_id=chat.id, user_id=host_id))
        return chat.id

    @staticmethod
    def enroll_member(chat_id, user_id):
        """
        Add ``user_id`` to the chat inside the caller's unit.

        Best effort: a missing chat or an existing membership is skipped.
        Returns True when a membership row was staged.
        """
        chat = db.session.get(Chat, chat_id)
        if chat is None:
            current_app.logger.warning("chat.enroll_skipped chat_id=%s user_id=%s reason=missing_chat",
                                       chat_id, user_id)
            return False

        existing = ChatMember.query.filter_by(chat_id=chat_id, user_id=user_id).first()
        if existing:
            return False

        db.session.add(ChatMember(chat_id=chat_id, user_id=user_id))
        return True

    @staticmethod
    def get_member_ids(chat_id):
        return [m.user_id for m in ChatMember.query.filter_by(chat_id=chat_id).all()]
