"""SQLAlchemy models for the policy tables touched by offline sync."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    String,
    TIMESTAMP,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from offline_policy.database.base import Base


class Employee(Base):
    """Tenant employee linked to an authenticated user."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )

    policies: Mapped[list["Policy"]] = relationship(
        "Policy", back_populates="employee"
    )


class Agent(Base):
    """Insurance agent linked to an authenticated user."""

    __tablename__ = "agents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()"
    )

    policies: Mapped[list["Policy"]] = relationship(
        "Policy", back_populates="agent"
    )


class Policy(Base):
    """Finalized policy row accepted from a client."""

    __tablename__ = "policies_new"
    __table_args__ = (
        CheckConstraint(
            "employee_id IS NULL OR agent_id IS NULL",
            name="ck_policies_new_single_creator",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    policy_number: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    premium_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=0
    )
    policy_status: Mapped[str] = mapped_column(
        String, nullable=False, default="Underwriting"
    )  # Draft | Pending Sync | Underwriting | ...
    line_of_business: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by_type: Mapped[str] = mapped_column(String, nullable=False)  # Employee | Agent
    employee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), nullable=True
    )
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("agents.id"), nullable=True
    )
    insurer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    policy_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    policy_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", nullable=False
    )

    employee: Mapped["Employee | None"] = relationship("Employee", back_populates="policies")
    agent: Mapped["Agent | None"] = relationship("Agent", back_populates="policies")
