"""
SQLAlchemy ORM models
"""
from decimal import Decimal
from datetime import date as date_type, datetime
from sqlalchemy import (
    String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, Numeric,
    UniqueConstraint, ForeignKey, false, true,
)
from sqlalchemy.orm import Mapped, mapped_column

from suba.infrastructure.db.session import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN", server_default="NGN")
    default_monthly_budget: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), nullable=False, default=0, server_default="0"
    )
    prefers_dark_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Subscription(Base):
    """
    A recurring service the user pays for.

    total_payments / payment_count are running aggregates bumped by every
    recorded payment.
    """
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    service_provider: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True, server_default="NGN")
    billing_cycle: Mapped[str] = mapped_column(String(16), nullable=False, default="monthly", server_default="monthly")
    next_billing_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    last_payment_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    reminder_days_before: Mapped[int] = mapped_column(Integer, nullable=False, default=3, server_default="3")
    is_shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_link: Mapped[str | None] = mapped_column(String(512), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")  # active, paused, cancelled
    skipped_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    next_reminder_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    total_payments: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=0, server_default="0"
    )
    payment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subscription_id: Mapped[int] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="successful", server_default="successful")  # successful, failed, pending
    # Day the user says it was paid (midnight), not insertion time
    paid_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    receipt_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class SharedPlan(Base):
    __tablename__ = "shared_plans"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )  # owner
    plan_name: Mapped[str] = mapped_column(String(255), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    split_type: Mapped[str] = mapped_column(String(16), nullable=False)  # equal, custom, percentage
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=2, server_default="2")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class SharedPlanParticipant(Base):
    __tablename__ = "shared_plan_participants"

    id: Mapped[int] = mapped_column(primary_key=True)
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("shared_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="invited", server_default="invited")  # invited, accepted, declined
    split_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), nullable=False, default=0, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("plan_id", "user_id", name="uq_shared_plan_participant"),
    )


class AiInsight(Base):
    """
    Generated suggestion for a user. Append-only until resolved.
    """
    __tablename__ = "ai_insights"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    affected_services: Mapped[str] = mapped_column(Text, nullable=False, default="[]", server_default="[]")  # JSON array
    confidence_score: Mapped[Decimal | None] = mapped_column(Numeric(precision=3, scale=2), nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    generated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class BudgetReport(Base):
    """
    Monthly spend snapshot; regenerated on demand only.
    """
    __tablename__ = "budget_reports"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    report_month: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=0, server_default="0"
    )
    recurring_services: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    new_subscriptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    canceled_subscriptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    most_expensive_service: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category_breakdown: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "report_month", name="uq_budget_report_user_month"),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="general", server_default="general")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    seen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
