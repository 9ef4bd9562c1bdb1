from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from posadmin.db import Base

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
MONEY = Numeric(12, 2)
RATE = Numeric(7, 3)


class Tax(Base):
    __tablename__ = "tax"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tax_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    tax_name: Mapped[str] = mapped_column(Text, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Printer(Base):
    __tablename__ = "printer"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    printer_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    printer_name: Mapped[str] = mapped_column(Text, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Station(Base):
    __tablename__ = "station"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    station_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    station_name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class StationGroup(Base):
    __tablename__ = "station_group"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    group_name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PrepZone(Base):
    __tablename__ = "prep_zone"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    prep_zone_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    prep_zone_name: Mapped[str] = mapped_column(Text, nullable=False)
    station_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("station.station_code")
    )
    printer_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("printer.printer_code")
    )
    backup_printer_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("printer.printer_code")
    )
    send_to_expediter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    always_print_ticket: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Availability(Base):
    __tablename__ = "availability"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    availability_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AvailabilitySchedule(Base):
    __tablename__ = "availability_schedule"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    availability_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("availability.id"), nullable=False
    )
    # Monday..Sunday, or AllDays
    day_name: Mapped[str] = mapped_column(String(10), nullable=False)
    # both null means All Times
    start_local: Mapped[time | None] = mapped_column(Time)
    end_local: Mapped[time | None] = mapped_column(Time)


class MenuMaster(Base):
    __tablename__ = "menu_master"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    menu_master_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    label_name: Mapped[str | None] = mapped_column(Text)
    color_code: Mapped[str | None] = mapped_column(String(16))
    tax_code: Mapped[str | None] = mapped_column(String(20), ForeignKey("tax.tax_code"))
    prep_zone_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("prep_zone.prep_zone_code")
    )
    availability_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("availability.availability_code")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class MenuCategory(Base):
    __tablename__ = "menu_category"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    menu_category_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    menu_master_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_master.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color_code: Mapped[str | None] = mapped_column(String(16))
    availability_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("availability.availability_code")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class MenuItem(Base):
    __tablename__ = "menu_item"
    __table_args__ = (
        CheckConstraint("base_price >= 0", name="base_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    menu_item_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    menu_category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_category.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kitchen_name: Mapped[str | None] = mapped_column(Text)
    label_name: Mapped[str | None] = mapped_column(Text)
    color_code: Mapped[str | None] = mapped_column(String(16))
    description: Mapped[str | None] = mapped_column(Text)
    calories: Mapped[int | None] = mapped_column(Integer)
    sku_plu: Mapped[str | None] = mapped_column(String(32))
    contains_alcohol: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    base_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    card_price: Mapped[Decimal | None] = mapped_column(MONEY)
    cash_price: Mapped[Decimal | None] = mapped_column(MONEY)
    tax_code: Mapped[str | None] = mapped_column(String(20), ForeignKey("tax.tax_code"))
    inherit_modifier_group: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    availability_code: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("availability.availability_code")
    )
    is_out_of_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ModifierGroup(Base):
    __tablename__ = "modifier_group"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    modifier_group_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    min_select: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_select: Mapped[int | None] = mapped_column(Integer)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ModifierItem(Base):
    __tablename__ = "modifier_item"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    modifier_item_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    modifier_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier_group.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class MenuCategoryModifierGroup(Base):
    __tablename__ = "menu_category_modifier_group"

    menu_category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_category.id"), primary_key=True
    )
    modifier_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier_group.id"), primary_key=True
    )


class MenuItemModifierGroup(Base):
    __tablename__ = "menu_item_modifier_group"

    menu_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_item.id"), primary_key=True
    )
    modifier_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier_group.id"), primary_key=True
    )


class TimeEvent(Base):
    __tablename__ = "time_event"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    event_name: Mapped[str] = mapped_column(Text, nullable=False)
    amount_add: Mapped[Decimal | None] = mapped_column(MONEY)
    amount_discount: Mapped[Decimal | None] = mapped_column(MONEY)
    percent_add: Mapped[Decimal | None] = mapped_column(RATE)
    percent_discount: Mapped[Decimal | None] = mapped_column(RATE)
    event_start_date: Mapped[date | None] = mapped_column(Date)
    event_end_date: Mapped[date | None] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    store_code: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class TimeEventWindow(Base):
    __tablename__ = "time_event_window"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="day_of_week"),
        UniqueConstraint("time_event_id", "day_of_week", name="uq_time_event_window_day"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    time_event_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("time_event.id"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(nullable=False)
    start_local: Mapped[time] = mapped_column(Time, nullable=False)
    end_local: Mapped[time] = mapped_column(Time, nullable=False)


class MenuMasterEvent(Base):
    __tablename__ = "menu_master_event"

    menu_master_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_master.id"), primary_key=True
    )
    time_event_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("time_event.id"), primary_key=True
    )
