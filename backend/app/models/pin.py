"""Pin model."""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

COORDINATE_SCALE = 8
_QUANTUM = Decimal(1).scaleb(-COORDINATE_SCALE)  # 0.00000001


def quantize_coordinate(value) -> Decimal:
    """Round a coordinate to the stored precision (8 fractional digits)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    value = value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)
    if value.is_zero():
        # -0.000000001 rounds to -0E-8; the store has no negative zero
        value = value.copy_abs()
    return value


class Pin(Base):
    """Point coordinate owned by a project."""

    __tablename__ = "pins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    latitude: Mapped[Decimal] = mapped_column(Numeric(10, COORDINATE_SCALE), nullable=False)
    longitude: Mapped[Decimal] = mapped_column(Numeric(11, COORDINATE_SCALE), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="pins")

    def set_coordinates(self, latitude, longitude) -> None:
        self.latitude = quantize_coordinate(latitude)
        self.longitude = quantize_coordinate(longitude)
