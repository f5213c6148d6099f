from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
import enum

from vending.database import Base
from vending.utils.time_utils import generate_id, utcnow


class Privilege(str, enum.Enum):
    """Enum for role privileges."""
    VIEW_PRODUCT = "VIEW_PRODUCT"
    ADD_PRODUCT = "ADD_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"
    DEPOSIT = "DEPOSIT"
    PURCHASE = "PURCHASE"
    ALL = "ALL"


class Role(Base):
    """Static reference data naming what a user may do (Buyer, Seller, Admin)."""
    __tablename__ = "roles"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(50), nullable=False, unique=True, index=True)
    privileges = Column(JSON, nullable=False, default=list)
    is_admin = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    date_created = Column(DateTime, nullable=False, default=utcnow)
    date_updated = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"
