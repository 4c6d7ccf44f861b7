from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devcamper.database import Base


class Bootcamp(Base):
    __tablename__ = "bootcamps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(254), nullable=True)
    average_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    photo: Mapped[str] = mapped_column(Text, nullable=False, default="no-photo.jpg")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    courses: Mapped[list["Course"]] = relationship(back_populates="bootcamp")  # noqa: F821
    reviews: Mapped[list["Review"]] = relationship(back_populates="bootcamp")  # noqa: F821
