from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from ..database import Base


ACCOUNT_TYPES = {
    "checking": "Checking Account",
    "savings": "Savings Account",
    "credit_card": "Credit Card",
    "investment": "Investment Account",
    "nisa": "NISA Account",
    "crypto": "Crypto Wallet",
    "cash": "Cash",
}

# Balance of these accounts is money owed, not money owned
LIABILITY_ACCOUNT_TYPES = {"credit_card"}


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint('user_id', 'name', name='uq_account_user_name'),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    account_type = Column(String(20), nullable=False, index=True)
    balance = Column(Numeric(18, 4), nullable=False, default=0)
    opening_balance = Column(Numeric(18, 4), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="JPY")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_liability(self) -> bool:
        return self.account_type in LIABILITY_ACCOUNT_TYPES
