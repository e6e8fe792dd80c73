from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, Numeric, DateTime, Integer
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base


class ProductCategory(str, Enum):
    CLAY = "CLAY"
    TEXTILES = "TEXTILES"
    WOOD = "WOOD"


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[ProductCategory] = mapped_column(
        SAEnum(ProductCategory, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        index=True
    )
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
