from sqlalchemy import Column, Integer, String, Text, Numeric, Enum
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import TimestampMixin


class SupplierCategory(enum.Enum):
    FOOD_SUPPLIES = "Food Supplies"
    ELECTRONICS = "Electronics"
    BUILDING_MATERIALS = "Building Materials"
    CLOTHING = "Clothing"
    FURNITURE = "Furniture"
    EQUIPMENT = "Equipment"
    SERVICES = "Services"
    OTHER = "Other"


class Supplier(Base, TimestampMixin):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    category = Column(Enum(SupplierCategory), nullable=False)
    notes = Column(Text, nullable=True)
    # balance == opening_balance + sum(credits) - sum(debits); only the
    # transaction create/delete path and opening_balance edits move it.
    opening_balance = Column(Numeric(14, 2), nullable=False, default=0)
    balance = Column(Numeric(14, 2), nullable=False, default=0)

    # Relationships
    transactions = relationship("Transaction", back_populates="supplier", passive_deletes=True)

    def __repr__(self):
        return f"<Supplier(id={self.id}, name={self.name}, balance={self.balance})>"
