"""Billing user model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.core.shared_models import BillingUserStatus
from ledgerline.models._base import Base, CreatedAtMixin, IdMixin


class BillingUser(Base, IdMixin, CreatedAtMixin):
    """Links an external identity to the internal billing id.

    The two credit flags only ever move from False to True.
    """

    __tablename__ = "billing_user"

    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=BillingUserStatus.ACTIVE.value, nullable=False
    )
    received_signup_credit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    first_paid_topup_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )
