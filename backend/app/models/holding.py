from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from ..database import Base


INVESTMENT_TYPES = {
    "nisa": "NISA (tax-exempt)",
    "regular": "Regular (taxable)",
}

STOCK_TYPES = {
    "japanese": "Japanese stock",
    "us": "US stock",
}


class Holding(Base):
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint('symbol', 'account_id', name='uq_symbol_account_id'),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    symbol = Column(String(20), nullable=False, index=True)
    name = Column(String(200))
    shares = Column(Numeric(18, 4), nullable=False)
    cost_basis = Column(Numeric(18, 4), nullable=False)  # per share
    current_price = Column(Numeric(18, 4), nullable=True)
    currency = Column(String(3), nullable=False, default="JPY")
    investment_type = Column(String(10), nullable=False, default="regular")
    stock_type = Column(String(10), nullable=False, default="japanese")
    purchase_date = Column(Date)
    notes = Column(Text)
    price_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
