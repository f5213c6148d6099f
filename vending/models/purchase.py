from sqlalchemy import Column, Integer, String, DateTime, Enum
import enum

from vending.database import Base
from vending.utils.money import Amount
from vending.utils.time_utils import generate_id, utcnow


class PurchaseStatus(str, enum.Enum):
    """Enum for purchase status."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Purchase(Base):
    """
    Ledger entry for one purchase.

    Buyer, seller and product are stored as plain identifiers so the
    ledger outlives deletion of the records it mentions.

    Attributes:
        id: Unique identifier for the purchase
        product_id: Purchased product
        buyer_id: User who paid
        seller_id: Product owner at the time of the purchase
        amount_value: Total spent (unit cost x quantity) in minor units
        status: PENDING while the transaction runs, COMPLETED once committed
        version: Optimistic concurrency counter
    """
    __tablename__ = "purchases"

    id = Column(String(32), primary_key=True, default=generate_id)
    product_id = Column(String(32), nullable=False, index=True)
    buyer_id = Column(String(32), nullable=False, index=True)
    seller_id = Column(String(32), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    amount_value = Column(Integer, nullable=False)
    amount_currency = Column(String(8), nullable=False, default="USD")
    amount_unit = Column(String(16), nullable=False, default="cent")
    status = Column(Enum(PurchaseStatus), default=PurchaseStatus.PENDING, nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    date_created = Column(DateTime, nullable=False, default=utcnow)
    date_updated = Column(DateTime, nullable=True)

    @property
    def amount(self) -> Amount:
        return Amount(value=self.amount_value, currency=self.amount_currency, unit=self.amount_unit)

    def __repr__(self):
        return f"<Purchase(id={self.id}, product_id={self.product_id}, status='{self.status}')>"
