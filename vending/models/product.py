from sqlalchemy import Column, Integer, String, Text, DateTime, CheckConstraint, UniqueConstraint

from vending.database import Base
from vending.utils.money import Amount
from vending.utils.time_utils import generate_id, utcnow


class Product(Base):
    """
    Product listed by a seller in the vending machine.

    Attributes:
        id: Unique identifier for the product
        product_name: Name, unique per seller
        product_description: Optional free text
        amount_available: Units in stock (must be non-negative)
        cost_value: Unit cost in minor units (positive multiple of 5)
        cost_currency: Currency of the unit cost
        cost_unit: Minor unit name of the unit cost
        seller_id: Owning seller, fixed at creation
        version: Optimistic concurrency counter, bumped on every write
        date_created: Timestamp when product was created
        date_updated: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(String(32), primary_key=True, default=generate_id)
    product_name = Column(String(255), nullable=False, index=True)
    product_description = Column(Text, nullable=True)
    amount_available = Column(Integer, nullable=False, default=0)
    cost_value = Column(Integer, nullable=False)
    cost_currency = Column(String(8), nullable=False, default="USD")
    cost_unit = Column(String(16), nullable=False, default="cent")
    seller_id = Column(String(32), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    date_created = Column(DateTime, nullable=False, default=utcnow)
    date_updated = Column(DateTime, nullable=True)

    # Database-level constraints to ensure data integrity
    __table_args__ = (
        CheckConstraint("cost_value > 0", name="check_cost_positive"),
        CheckConstraint("amount_available >= 0", name="check_stock_non_negative"),
        UniqueConstraint("seller_id", "product_name", name="uq_product_seller_name"),
    )

    @property
    def cost(self) -> Amount:
        return Amount(value=self.cost_value, currency=self.cost_currency, unit=self.cost_unit)

    def __repr__(self):
        return f"<Product(id={self.id}, product_name='{self.product_name}', amount_available={self.amount_available})>"
