from sqlalchemy import Column, Integer, Numeric, Date, String, ForeignKey, Text, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import TimestampMixin


class TransactionType(enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    type = Column(Enum(TransactionType, values_callable=lambda e: [m.value for m in e], name="transaction_type"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False, index=True)

    # Relationships
    supplier = relationship("Supplier", back_populates="transactions")

    @property
    def balance_delta(self):
        """Signed effect of this transaction on its supplier's balance."""
        return self.amount if self.type == TransactionType.CREDIT else -self.amount
