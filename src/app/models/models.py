import datetime
from sqlalchemy import (
    Integer, String, DateTime, Index, Date, Text, Boolean, JSON
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from sqlalchemy.schema import ForeignKey
from typing import List, Optional

class Base(DeclarativeBase):
    pass

class GeographicUnit(Base):

    __tablename__ = "geographic_units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)


    cases: Mapped[List["DiseaseCase"]] = relationship(back_populates="geographic_unit")


class DiseaseCase(Base):

    __tablename__ = "disease_cases"

    id: Mapped[int] = mapped_column(primary_key=True)

    geographic_unit_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("geographic_units.id"),
        nullable=True,
        index=True
    )

    geographic_unit: Mapped[Optional["GeographicUnit"]] = relationship(back_populates="cases")

    disease_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    custom_disease_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True,
                                                               comment="Only set when disease_type is 'other'")

    diagnosis_date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_case_status_type_date", "status", "disease_type", "diagnosis_date"),
    )


class DiseaseStatistic(Base):

    __tablename__ = "disease_statistics"

    id: Mapped[int] = mapped_column(primary_key=True)

    disease_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    custom_disease_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # NULL means a city-wide count
    geographic_unit_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("geographic_units.id"),
        nullable=True,
        index=True
    )

    record_date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    case_count: Mapped[int] = mapped_column(Integer, nullable=False)
    severity: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True,
                                                  comment="Ex: DOH bulletin, CHO records")

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Account(Base):

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")


    notifications: Mapped[List["Notification"]] = relationship(back_populates="user")


class Notification(Base):

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=False,
        index=True
    )

    user: Mapped["Account"] = relationship(back_populates="notifications")

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_notification_dedup", "user_id", "title", "created_at"),
    )
