"""SQLAlchemy ORM model for the categories table.

Table is created by Alembic migration: alembic/versions/002_create_categories.py
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.et_common.database import Base
from src.et_common.datetime_utils import utc_now


class CategoryModel(Base):
    __tablename__ = "categories"
    __table_args__ = (Index("idx_categories_user_active", "user_id", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str | None] = mapped_column(String(7))
    icon: Mapped[str | None] = mapped_column(String(50))
    budget: Mapped[int | None] = mapped_column(BigInteger)  # cents
    description: Mapped[str | None] = mapped_column(String(200))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )


# One active category per name per user, case-insensitively
Index(
    "uq_categories_user_active_name",
    CategoryModel.user_id,
    func.lower(CategoryModel.name),
    unique=True,
    postgresql_where=CategoryModel.is_active,
    sqlite_where=CategoryModel.is_active,
)
