from datetime import datetime
from decimal import Decimal
from uuid import UUID

from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from fanview.db.base import Base

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"


class Subscription(Base):
    """A fan's paid subscription to a creator."""

    __tablename__ = "subscriptions"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id: Mapped[UUID] = mapped_column(ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True)
    paypal_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_ACTIVE)
    start_date: Mapped[datetime] = mapped_column(DateTimeUTC, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTimeUTC, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
