from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    TIMESTAMP,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from camara_ai.core.database import Base


# =========================
# Deputy
# =========================
class Deputy(Base):
    """
    A federal deputy as published by the Câmara dos Deputados open-data API.

    The import jobs own this table; the assistant only reads it.
    """

    __tablename__ = "deputies"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Official id from the Câmara API, referenced by expenses
    external_id = Column(Integer, nullable=False, unique=True, index=True)

    name = Column(String, nullable=False, index=True)
    party_code = Column(String, nullable=False, index=True)  # "PT", "PL", "UNIÃO"
    state_code = Column(String(2), nullable=False, index=True)  # "SP", "MG"
    legislature_id = Column(Integer, nullable=False)

    email = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    expenses = relationship("Expense", back_populates="deputy")


# =========================
# Expense (CEAP reimbursement line)
# =========================
class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        UniqueConstraint(
            "deputy_id",
            "document_code",
            "document_number",
            "year",
            "month",
            name="uq_expense_document",
        ),
        Index("ix_expenses_deputy_period", "deputy_id", "year", "month"),
        Index("ix_expenses_period", "year", "month"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    deputy_id = Column(
        Integer,
        ForeignKey("deputies.external_id", ondelete="CASCADE"),
        nullable=False,
    )

    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    document_date = Column(Date, nullable=True)

    expense_type = Column(String, nullable=False, index=True)
    supplier_name = Column(String, nullable=False)
    supplier_tax_id = Column(String, nullable=True)  # CNPJ or CPF

    document_code = Column(Integer, nullable=False)
    document_number = Column(String, nullable=False)

    document_value = Column(Numeric(12, 2), nullable=False, default=0)  # gross
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)  # glosa
    net_value = Column(Numeric(12, 2), nullable=False, default=0)  # use for totals

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    deputy = relationship("Deputy", back_populates="expenses")
