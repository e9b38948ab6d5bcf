# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment and payment tables."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Float, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin, IdMixin


class PaymentStatus(str, Enum):
    """Payment lifecycle states."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class Payment(IdMixin, CreatedAtMixin, Base):
    """Checkout payment. One payment may fund several enrollments."""

    __tablename__ = "Payment"

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    original_amount: Mapped[Decimal] = mapped_column("originalAmount", Numeric(12, 2))
    discount_amount: Mapped[Decimal] = mapped_column("discountAmount", Numeric(12, 2))
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)
    method: Mapped[str | None] = mapped_column(String, nullable=True)
    gateway: Mapped[str | None] = mapped_column(String, nullable=True)
    refund_amount: Mapped[Decimal | None] = mapped_column(
        "refundAmount", Numeric(12, 2), nullable=True
    )
    refund_reason: Mapped[str | None] = mapped_column("refundReason", String, nullable=True)


class Enrollment(IdMixin, CreatedAtMixin, Base):
    """Student enrollment in a course."""

    __tablename__ = "Enrollment"

    student_id: Mapped[str] = mapped_column("studentId", ForeignKey("Student.id"))
    course_id: Mapped[str] = mapped_column("courseId", ForeignKey("Course.id"))
    payment_id: Mapped[str | None] = mapped_column(
        "paymentId", ForeignKey("Payment.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(String)
    progress: Mapped[float] = mapped_column(Float)


class Earning(IdMixin, CreatedAtMixin, Base):
    """Instructor share of a payment, net of platform commission and fees."""

    __tablename__ = "Earning"

    instructor_id: Mapped[str] = mapped_column("instructorId", ForeignKey("Instructor.id"))
    payment_id: Mapped[str | None] = mapped_column(
        "paymentId", ForeignKey("Payment.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    commission: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    platform_fee: Mapped[Decimal] = mapped_column("platformFee", Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)
