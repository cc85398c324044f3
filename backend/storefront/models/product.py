"""
Product model - a digital product in the storefront catalog.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.core.database import Base


class ProductType(str, Enum):
    """Kinds of digital goods on sale."""

    PDF = "pdf"
    VIDEO = "video"
    WORKBOOK = "workbook"


class Product(Base):
    """Catalog entry used to enrich activity events for display."""

    __tablename__ = "products"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    product_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProductType.PDF.value,
    )
    image: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product {self.title[:30]}>"
