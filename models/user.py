from sqlalchemy import Column, Integer, String, DateTime
from db.extensions import db
from .base import current_time_utc


class User(db.Model):
    __tablename__ = 'users'

    # uid is issued by the external auth provider
    id = Column(String(128), primary_key=True)
    display_name = Column(String(255), nullable=True)

    # Display cache only. The ledger fold is canonical.
    wallet_balance = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=current_time_utc, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<User id={self.id} wallet_balance={self.wallet_balance}>"

    def to_dict(self):
        return {
            'uid': self.id,
            'display_name': self.display_name,
            'wallet_balance': self.wallet_balance,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
