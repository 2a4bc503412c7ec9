from sqlalchemy import Column, Integer, Numeric, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from app.db.session import Base

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
SETTLEMENT_STATUSES = (PENDING, ACCEPTED, REJECTED)

class Settlement(Base):
    __tablename__ = "settlements"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlement_amount_positive"),
        CheckConstraint("from_user_id <> to_user_id", name="ck_settlement_distinct_users"),
        # a rejected settlement can be resent once
        UniqueConstraint("resent_from_id", name="uq_settlement_resent_from"),
    )

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default=PENDING, server_default=PENDING)
    message = Column(String, nullable=True)
    rejected_reason = Column(String, nullable=True)
    # set on a resend: the rejected settlement this one replaces
    resent_from_id = Column(Integer, ForeignKey("settlements.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
