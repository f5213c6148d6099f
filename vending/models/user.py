from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint

from vending.database import Base
from vending.utils.money import Amount
from vending.utils.time_utils import generate_id, utcnow


class User(Base):
    """
    Buyer, seller or admin account.

    Attributes:
        id: Unique identifier for the user
        username: Login name, 5-20 characters, unique
        password: bcrypt hash, never the plaintext
        deposit_value: Coins inserted and not yet spent, in minor units
        role_id: Reference to the user's role
        machine_id: Access client (vending machine) the account was created on
        is_admin: True for administrator accounts
        version: Optimistic concurrency counter, bumped on every write
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_id)
    username = Column(String(20), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    deposit_value = Column(Integer, nullable=False, default=0)
    deposit_currency = Column(String(8), nullable=False, default="USD")
    deposit_unit = Column(String(16), nullable=False, default="cent")
    role_id = Column(String(32), ForeignKey("roles.id"), nullable=False, index=True)
    machine_id = Column(String(32), ForeignKey("access_clients.id"), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    date_created = Column(DateTime, nullable=False, default=utcnow)
    date_updated = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("deposit_value >= 0", name="check_deposit_non_negative"),
    )

    @property
    def deposit(self) -> Amount:
        return Amount(value=self.deposit_value, currency=self.deposit_currency, unit=self.deposit_unit)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
