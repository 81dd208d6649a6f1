from __future__ import annotations

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import CompanyScopedBase


class Member(CompanyScopedBase):
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_members_company_email"),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="incomplete")
    plan: Mapped[str | None] = mapped_column(String(50), nullable=True)
