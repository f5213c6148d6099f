from sqlalchemy import Column, Integer, String, DateTime, JSON

from vending.database import Base
from vending.utils.time_utils import generate_id, utcnow


class AccessClient(Base):
    """
    OAuth2 client registered for a vending machine.

    The client secret is stored hashed.
    """
    __tablename__ = "access_clients"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    client_id = Column(String(100), nullable=False, unique=True, index=True)
    client_secret = Column(String(255), nullable=False)
    grants = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    date_created = Column(DateTime, nullable=False, default=utcnow)
    date_updated = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<AccessClient(id={self.id}, name='{self.name}')>"


class AccessToken(Base):
    """
    Bearer token issued to a user through an access client.

    Expiry times are epoch seconds. Scope holds lower-case role names
    separated by spaces.
    """
    __tablename__ = "access_tokens"

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(32), nullable=False, index=True)
    client_id = Column(String(100), nullable=False)
    access_token = Column(String(128), nullable=False, unique=True, index=True)
    refresh_token = Column(String(128), nullable=False, unique=True, index=True)
    scope = Column(String(255), nullable=False, default="")
    access_token_expires_at = Column(Integer, nullable=False)
    refresh_token_expires_at = Column(Integer, nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    date_created = Column(DateTime, nullable=False, default=utcnow)
    date_updated = Column(DateTime, nullable=True)

    @property
    def scopes(self):
        return [s for s in self.scope.split(" ") if s]

    def __repr__(self):
        return f"<AccessToken(id={self.id}, user_id={self.user_id})>"
