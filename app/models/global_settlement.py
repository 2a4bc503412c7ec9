from sqlalchemy import Column, Integer, Numeric, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from app.db.session import Base
from app.models.settlement import PENDING

class GlobalSettlement(Base):
    """A settlement between two users that is not tied to one group."""

    __tablename__ = "global_settlements"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_global_settlement_amount_positive"),
        CheckConstraint("from_user_id <> to_user_id", name="ck_global_settlement_distinct_users"),
        UniqueConstraint("resent_from_id", name="uq_global_settlement_resent_from"),
    )

    id = Column(Integer, primary_key=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default=PENDING, server_default=PENDING)
    message = Column(String, nullable=True)
    rejected_reason = Column(String, nullable=True)
    resent_from_id = Column(Integer, ForeignKey("global_settlements.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
