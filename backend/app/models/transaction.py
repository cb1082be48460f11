from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, Text, ForeignKey
from sqlalchemy.sql import func
from ..database import Base


TRANSACTION_CATEGORIES = {
    # Income categories
    "salary": ("Salary", "income"),
    "bonus": ("Bonus", "income"),
    "investment_income": ("Investment Income", "income"),
    "other_income": ("Other Income", "income"),
    # Expense categories
    "food_dining": ("Food & Dining", "expense"),
    "groceries": ("Groceries", "expense"),
    "transportation": ("Transportation", "expense"),
    "utilities": ("Utilities", "expense"),
    "entertainment": ("Entertainment", "expense"),
    "shopping": ("Shopping", "expense"),
    "healthcare": ("Healthcare", "expense"),
    "education": ("Education", "expense"),
    "travel": ("Travel", "expense"),
    "accommodation": ("Accommodation", "expense"),
    "subscription": ("Subscription", "expense"),
    "insurance": ("Insurance", "expense"),
    "rent": ("Rent", "expense"),
    "loan_payment": ("Loan Payment", "expense"),
    "tax": ("Tax", "expense"),
    "other_expense": ("Other Expense", "expense"),
}


class Transaction(Base):
    """
    One income, expense or transfer.

    `amount` is signed for income (+) and expense (-) and an unsigned
    magnitude for transfers. `applied_amount` and `applied_to_amount` hold the
    magnitudes that were posted to the account balances, in each account's
    own currency, so deleting the record reverses exactly what was applied.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(String(10), nullable=False, index=True)
    amount = Column(Numeric(18, 4), nullable=False)
    currency = Column(String(3), nullable=False)
    date = Column(Date, nullable=False, index=True)
    description = Column(Text)
    category = Column(String(30))

    # Simple transactions
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)

    # Transfers
    from_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)

    applied_amount = Column(Numeric(18, 4), nullable=False)
    applied_to_amount = Column(Numeric(18, 4), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
