from __future__ import annotations

from datetime import datetime
from sqlalchemy import String, Integer, Numeric, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from .seller import Base


class Vehicle(Base):
    """Local mirror of one catalog listing; seller fields are denormalized per listing."""

    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("external_id", name="uq_vehicles_external"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str | None] = mapped_column(String(300), nullable=True)
    make: Mapped[str | None] = mapped_column(String(80), nullable=True, index=True)
    model: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    trim: Mapped[str | None] = mapped_column(String(120), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    price: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True, index=True)
    payment: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(40), nullable=True)
    body_style: Mapped[str | None] = mapped_column(String(80), nullable=True)
    drivetrain: Mapped[str | None] = mapped_column(String(40), nullable=True)
    transmission: Mapped[str | None] = mapped_column(String(80), nullable=True)
    fuel_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    exterior_color: Mapped[str | None] = mapped_column(String(80), nullable=True)
    interior_color: Mapped[str | None] = mapped_column(String(80), nullable=True)
    seller_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    dealer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    dealer_account: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(40), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    listed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
