from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posadmin.codes import DEFAULT_PREFIX, EVENT_PREFIX, TAX_PREFIX, next_code
from posadmin.config import settings
from posadmin.db import SessionLocal
from posadmin.models import (
    Availability,
    AvailabilitySchedule,
    MenuCategory,
    MenuCategoryModifierGroup,
    MenuItem,
    MenuItemModifierGroup,
    MenuMaster,
    MenuMasterEvent,
    ModifierGroup,
    ModifierItem,
    PrepZone,
    Printer,
    Station,
    StationGroup,
    Tax,
    TimeEvent,
    TimeEventWindow,
)
from posadmin.rules import (
    ADJUSTMENT_PRECEDENCE,
    ALL_DAYS,
    ALL_TIMES,
    DAY_NAMES,
    AvailabilityRule,
    AvailabilityWindow,
    CategoryRule,
    EventSchedule,
    ItemRule,
    PricingEvent,
    Resolution,
    TimeWindow,
    day_index,
    format_hhmm,
    parse_hhmm,
    quote_line,
    resolve_item,
    resolve_menu,
    resolve_modifier_groups,
    resolve_tax_code,
    round_price,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="POS Admin")


def _meta(request_id: Optional[str] = None, warnings: Optional[list[str]] = None) -> dict:
    return {
        "request_id": request_id or f"req_{uuid4().hex}",
        "warnings": warnings or [],
    }


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _now() -> datetime:
    return datetime.now(ZoneInfo("UTC"))


def _local_instant(at: Optional[datetime]) -> datetime:
    tz = ZoneInfo(settings.store_timezone)
    if at is None:
        return datetime.now(tz)
    if at.tzinfo is None:
        return at
    return at.astimezone(tz)


def _money(value: Optional[Decimal]) -> Optional[str]:
    return str(round_price(Decimal(value))) if value is not None else None


def _rate(value: Optional[Decimal]) -> Optional[str]:
    return format(Decimal(value).normalize(), "f") if value is not None else None


def _paginate_by_id(query, model, limit: int, cursor: Optional[int]) -> tuple[list[Any], Optional[int]]:
    if cursor is not None:
        query = query.filter(model.id > cursor)
    rows = query.order_by(model.id).limit(limit + 1).all()
    next_cursor = None
    if len(rows) > limit:
        next_cursor = rows[limit - 1].id
        rows = rows[:limit]
    return rows, next_cursor


def _list_meta(limit: int, cursor: Optional[int], next_cursor: Optional[int]) -> dict:
    meta = _meta()
    if next_cursor is not None:
        meta["page"] = {"limit": limit, "cursor": str(next_cursor)}
    elif cursor is not None:
        meta["page"] = {"limit": limit, "cursor": str(cursor)}
    else:
        meta["page"] = {"limit": limit, "cursor": None}
    return meta


def _get_or_404(db: Session, model, row_id: int, label: str):
    row = db.get(model, row_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def _commit(db: Session, what: str) -> None:
    _write(db, what, db.commit)


def _flush(db: Session, what: str) -> None:
    _write(db, what, db.flush)


def _write(db: Session, what: str, step) -> None:
    try:
        step()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("%s rejected by database constraint: %s", what, exc.orig)
        raise HTTPException(status_code=409, detail=f"{what} conflicts with existing data") from exc


def _apply_changes(row, changes: dict, required: tuple[str, ...] = ()) -> None:
    for name, value in changes.items():
        if value is None and name in required:
            raise HTTPException(status_code=422, detail=f"{name} may not be null")
        setattr(row, name, value)


def _check_hhmm(value: str) -> str:
    parse_hhmm(value)
    return value


HHMM = Annotated[str, AfterValidator(_check_hhmm)]
Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
Rate = Annotated[Decimal, Field(ge=0, max_digits=7, decimal_places=3)]


class Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


@app.get("/", tags=["root"])
def read_root() -> dict:
    return {"status": "ok"}


@app.get("/health", tags=["health"])
def health_check() -> dict:
    return {"status": "healthy"}


# Taxes


class TaxCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"tax_name": "VAT", "tax_rate": "5.000"}}}
    tax_name: str = Field(min_length=1)
    tax_rate: Rate


class TaxUpdate(Payload):
    tax_name: Optional[str] = Field(default=None, min_length=1)
    tax_rate: Optional[Rate] = None


def _tax_data(tax: Tax) -> dict:
    return {
        "tax_id": tax.id,
        "tax_code": tax.tax_code,
        "tax_name": tax.tax_name,
        "tax_rate": _rate(tax.tax_rate),
        "created_at": tax.created_at.isoformat(),
    }


@app.post("/api/v1/taxes", tags=["Taxes"])
def create_tax(payload: TaxCreate, db: Session = Depends(get_db)) -> dict:
    tax = Tax(
        tax_code=next_code(db, Tax.tax_code, TAX_PREFIX),
        tax_name=payload.tax_name,
        tax_rate=payload.tax_rate,
        store_code=settings.store_code,
        created_at=_now(),
    )
    db.add(tax)
    _commit(db, "tax")
    db.refresh(tax)
    logger.info("created tax %s", tax.tax_code)
    return {"data": _tax_data(tax), "meta": _meta()}


@app.get("/api/v1/taxes/{tax_id}", tags=["Taxes"])
def get_tax(tax_id: int, db: Session = Depends(get_db)) -> dict:
    tax = _get_or_404(db, Tax, tax_id, "tax")
    return {"data": _tax_data(tax), "meta": _meta()}


@app.get("/api/v1/taxes", tags=["Taxes"])
def list_taxes(
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    rows, next_cursor = _paginate_by_id(db.query(Tax), Tax, limit, cursor)
    return {"data": [_tax_data(row) for row in rows], "meta": _list_meta(limit, cursor, next_cursor)}


@app.put("/api/v1/taxes/{tax_id}", tags=["Taxes"])
def update_tax(tax_id: int, payload: TaxUpdate, db: Session = Depends(get_db)) -> dict:
    tax = _get_or_404(db, Tax, tax_id, "tax")
    _apply_changes(tax, payload.model_dump(exclude_unset=True), required=("tax_name", "tax_rate"))
    _commit(db, "tax")
    db.refresh(tax)
    return {"data": _tax_data(tax), "meta": _meta()}


@app.delete("/api/v1/taxes/{tax_id}", tags=["Taxes"])
def delete_tax(tax_id: int, db: Session = Depends(get_db)) -> dict:
    tax = _get_or_404(db, Tax, tax_id, "tax")
    in_use = (
        db.query(MenuMaster).filter(MenuMaster.tax_code == tax.tax_code).first()
        or db.query(MenuItem).filter(MenuItem.tax_code == tax.tax_code).first()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="tax is still assigned")
    db.delete(tax)
    _commit(db, "tax")
    return {"data": {"tax_id": tax_id, "deleted": True}, "meta": _meta()}


# Printers, stations, prep zones


class PrinterCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"printer_name": "Kitchen 1", "ip_address": "10.0.0.21"}}}
    printer_name: str = Field(min_length=1)
    ip_address: Optional[str] = None
    is_active: bool = True


class PrinterUpdate(Payload):
    printer_name: Optional[str] = Field(default=None, min_length=1)
    ip_address: Optional[str] = None
    is_active: Optional[bool] = None


def _printer_data(printer: Printer) -> dict:
    return {
        "printer_id": printer.id,
        "printer_code": printer.printer_code,
        "printer_name": printer.printer_name,
        "ip_address": printer.ip_address,
        "is_active": printer.is_active,
    }


@app.post("/api/v1/printers", tags=["Printers"])
def create_printer(payload: PrinterCreate, db: Session = Depends(get_db)) -> dict:
    printer = Printer(
        printer_code=next_code(db, Printer.printer_code, DEFAULT_PREFIX),
        printer_name=payload.printer_name,
        ip_address=payload.ip_address,
        is_active=payload.is_active,
        store_code=settings.store_code,
        created_at=_now(),
    )
    db.add(printer)
    _commit(db, "printer")
    db.refresh(printer)
    return {"data": _printer_data(printer), "meta": _meta()}


@app.get("/api/v1/printers/{printer_id}", tags=["Printers"])
def get_printer(printer_id: int, db: Session = Depends(get_db)) -> dict:
    printer = _get_or_404(db, Printer, printer_id, "printer")
    return {"data": _printer_data(printer), "meta": _meta()}


@app.get("/api/v1/printers", tags=["Printers"])
def list_printers(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(Printer)
    if is_active is not None:
        query = query.filter(Printer.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, Printer, limit, cursor)
    return {"data": [_printer_data(row) for row in rows], "meta": _list_meta(limit, cursor, next_cursor)}


@app.put("/api/v1/printers/{printer_id}", tags=["Printers"])
def update_printer(printer_id: int, payload: PrinterUpdate, db: Session = Depends(get_db)) -> dict:
    printer = _get_or_404(db, Printer, printer_id, "printer")
    _apply_changes(printer, payload.model_dump(exclude_unset=True), required=("printer_name", "is_active"))
    _commit(db, "printer")
    db.refresh(printer)
    return {"data": _printer_data(printer), "meta": _meta()}


@app.delete("/api/v1/printers/{printer_id}", tags=["Printers"])
def delete_printer(printer_id: int, db: Session = Depends(get_db)) -> dict:
    printer = _get_or_404(db, Printer, printer_id, "printer")
    code = printer.printer_code
    in_use = (
        db.query(PrepZone)
        .filter((PrepZone.printer_code == code) | (PrepZone.backup_printer_code == code))
        .first()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="printer is still assigned")
    db.delete(printer)
    _commit(db, "printer")
    return {"data": {"printer_id": printer_id, "deleted": True}, "meta": _meta()}


class StationCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"station_name": "Grill"}}}
    station_name: str = Field(min_length=1)
    is_active: bool = True


class StationUpdate(Payload):
    station_name: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None


def _station_data(station: Station) -> dict:
    return {
        "station_id": station.id,
        "station_code": station.station_code,
        "station_name": station.station_name,
        "is_active": station.is_active,
    }


@app.post("/api/v1/stations", tags=["Stations"])
def create_station(payload: StationCreate, db: Session = Depends(get_db)) -> dict:
    station = Station(
        station_code=next_code(db, Station.station_code, DEFAULT_PREFIX),
        station_name=payload.station_name,
        is_active=payload.is_active,
        store_code=settings.store_code,
        created_at=_now(),
    )
    db.add(station)
    _commit(db, "station")
    db.refresh(station)
    return {"data": _station_data(station), "meta": _meta()}


@app.get("/api/v1/stations/{station_id}", tags=["Stations"])
def get_station(station_id: int, db: Session = Depends(get_db)) -> dict:
    station = _get_or_404(db, Station, station_id, "station")
    return {"data": _station_data(station), "meta": _meta()}


@app.get("/api/v1/stations", tags=["Stations"])
def list_stations(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(Station)
    if is_active is not None:
        query = query.filter(Station.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, Station, limit, cursor)
    return {"data": [_station_data(row) for row in rows], "meta": _list_meta(limit, cursor, next_cursor)}


@app.put("/api/v1/stations/{station_id}", tags=["Stations"])
def update_station(station_id: int, payload: StationUpdate, db: Session = Depends(get_db)) -> dict:
    station = _get_or_404(db, Station, station_id, "station")
    _apply_changes(station, payload.model_dump(exclude_unset=True), required=("station_name", "is_active"))
    _commit(db, "station")
    db.refresh(station)
    return {"data": _station_data(station), "meta": _meta()}


@app.delete("/api/v1/stations/{station_id}", tags=["Stations"])
def delete_station(station_id: int, db: Session = Depends(get_db)) -> dict:
    station = _get_or_404(db, Station, station_id, "station")
    if db.query(PrepZone).filter(PrepZone.station_code == station.station_code).first():
        raise HTTPException(status_code=409, detail="station is still assigned")
    db.delete(station)
    _commit(db, "station")
    return {"data": {"station_id": station_id, "deleted": True}, "meta": _meta()}


class PrepZoneCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"prep_zone_name": "Hot Line", "station_code": "W001", "printer_code": "W001", "send_to_expediter": True}}}
    prep_zone_name: str = Field(min_length=1)
    station_code: Optional[str] = None
    printer_code: Optional[str] = None
    backup_printer_code: Optional[str] = None
    send_to_expediter: bool = False
    always_print_ticket: bool = False
    is_active: bool = True


class PrepZoneUpdate(Payload):
    prep_zone_name: Optional[str] = Field(default=None, min_length=1)
    station_code: Optional[str] = None
    printer_code: Optional[str] = None
    backup_printer_code: Optional[str] = None
    send_to_expediter: Optional[bool] = None
    always_print_ticket: Optional[bool] = None
    is_active: Optional[bool] = None


def _prep_zone_data(zone: PrepZone) -> dict:
    return {
        "prep_zone_id": zone.id,
        "prep_zone_code": zone.prep_zone_code,
        "prep_zone_name": zone.prep_zone_name,
        "station_code": zone.station_code,
        "printer_code": zone.printer_code,
        "backup_printer_code": zone.backup_printer_code,
        "send_to_expediter": zone.send_to_expediter,
        "always_print_ticket": zone.always_print_ticket,
        "is_active": zone.is_active,
    }


def _check_prep_zone_references(db: Session, changes: dict) -> None:
    for name in ("printer_code", "backup_printer_code"):
        _check_reference(db, Printer.printer_code, changes.get(name), "printer")
    _check_reference(db, Station.station_code, changes.get("station_code"), "station")


@app.post("/api/v1/prep-zones", tags=["Prep Zones"])
def create_prep_zone(payload: PrepZoneCreate, db: Session = Depends(get_db)) -> dict:
    _check_prep_zone_references(db, payload.model_dump())
    zone = PrepZone(
        prep_zone_code=next_code(db, PrepZone.prep_zone_code, DEFAULT_PREFIX),
        store_code=settings.store_code,
        created_at=_now(),
        **payload.model_dump(),
    )
    db.add(zone)
    _commit(db, "prep zone")
    db.refresh(zone)
    return {"data": _prep_zone_data(zone), "meta": _meta()}


@app.get("/api/v1/prep-zones/{prep_zone_id}", tags=["Prep Zones"])
def get_prep_zone(prep_zone_id: int, db: Session = Depends(get_db)) -> dict:
    zone = _get_or_404(db, PrepZone, prep_zone_id, "prep zone")
    return {"data": _prep_zone_data(zone), "meta": _meta()}


@app.get("/api/v1/prep-zones", tags=["Prep Zones"])
def list_prep_zones(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(PrepZone)
    if is_active is not None:
        query = query.filter(PrepZone.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, PrepZone, limit, cursor)
    return {"data": [_prep_zone_data(row) for row in rows], "meta": _list_meta(limit, cursor, next_cursor)}


@app.put("/api/v1/prep-zones/{prep_zone_id}", tags=["Prep Zones"])
def update_prep_zone(prep_zone_id: int, payload: PrepZoneUpdate, db: Session = Depends(get_db)) -> dict:
    zone = _get_or_404(db, PrepZone, prep_zone_id, "prep zone")
    changes = payload.model_dump(exclude_unset=True)
    _check_prep_zone_references(db, changes)
    _apply_changes(
        zone,
        changes,
        required=("prep_zone_name", "send_to_expediter", "always_print_ticket", "is_active"),
    )
    _commit(db, "prep zone")
    db.refresh(zone)
    return {"data": _prep_zone_data(zone), "meta": _meta()}


@app.delete("/api/v1/prep-zones/{prep_zone_id}", tags=["Prep Zones"])
def delete_prep_zone(prep_zone_id: int, db: Session = Depends(get_db)) -> dict:
    zone = _get_or_404(db, PrepZone, prep_zone_id, "prep zone")
    if db.query(MenuMaster).filter(MenuMaster.prep_zone_code == zone.prep_zone_code).first():
        raise HTTPException(status_code=409, detail="prep zone is still assigned")
    db.delete(zone)
    _commit(db, "prep zone")
    return {"data": {"prep_zone_id": prep_zone_id, "deleted": True}, "meta": _meta()}


class StationGroupCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"group_name": "Hot Side"}}}
    group_name: str = Field(min_length=1)
    is_active: bool = True


class StationGroupUpdate(Payload):
    group_name: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None


def _station_group_data(group: StationGroup) -> dict:
    return {
        "station_group_id": group.id,
        "group_name": group.group_name,
        "is_active": group.is_active,
        "created_at": group.created_at.isoformat(),
    }


@app.post("/api/v1/station-groups", tags=["Station Groups"])
def create_station_group(payload: StationGroupCreate, db: Session = Depends(get_db)) -> dict:
    group = StationGroup(store_code=settings.store_code, created_at=_now(), **payload.model_dump())
    db.add(group)
    _commit(db, "station group")
    db.refresh(group)
    return {"data": _station_group_data(group), "meta": _meta()}


@app.get("/api/v1/station-groups/{station_group_id}", tags=["Station Groups"])
def get_station_group(station_group_id: int, db: Session = Depends(get_db)) -> dict:
    group = _get_or_404(db, StationGroup, station_group_id, "station group")
    return {"data": _station_group_data(group), "meta": _meta()}


@app.get("/api/v1/station-groups", tags=["Station Groups"])
def list_station_groups(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(StationGroup)
    if is_active is not None:
        query = query.filter(StationGroup.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, StationGroup, limit, cursor)
    return {
        "data": [_station_group_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/station-groups/{station_group_id}", tags=["Station Groups"])
def update_station_group(
    station_group_id: int, payload: StationGroupUpdate, db: Session = Depends(get_db)
) -> dict:
    group = _get_or_404(db, StationGroup, station_group_id, "station group")
    _apply_changes(group, payload.model_dump(exclude_unset=True), required=("group_name", "is_active"))
    _commit(db, "station group")
    db.refresh(group)
    return {"data": _station_group_data(group), "meta": _meta()}


@app.delete("/api/v1/station-groups/{station_group_id}", tags=["Station Groups"])
def delete_station_group(station_group_id: int, db: Session = Depends(get_db)) -> dict:
    group = _get_or_404(db, StationGroup, station_group_id, "station group")
    db.delete(group)
    _commit(db, "station group")
    return {"data": {"station_group_id": station_group_id, "deleted": True}, "meta": _meta()}


# Availability


class AvailabilityScheduleInput(Payload):
    day_name: str
    start_time: Optional[HHMM] = None
    end_time: Optional[HHMM] = None

    @field_validator("day_name")
    @classmethod
    def _known_day(cls, value: str) -> str:
        if value != ALL_DAYS and value not in DAY_NAMES:
            raise ValueError(f"day_name must be one of {', '.join(DAY_NAMES)} or {ALL_DAYS}")
        return value

    @model_validator(mode="after")
    def _window(self) -> "AvailabilityScheduleInput":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None and parse_hhmm(self.start_time) >= parse_hhmm(self.end_time):
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"name": "Weekend Brunch", "schedules": [{"day_name": "Saturday", "start_time": "10:00", "end_time": "22:00"}, {"day_name": "Sunday", "start_time": "10:00", "end_time": "22:00"}]}}}
    name: str = Field(min_length=1)
    schedules: list[AvailabilityScheduleInput] = []


class AvailabilitySchedulesReplace(Payload):
    schedules: list[AvailabilityScheduleInput]


class AvailabilityUpdate(Payload):
    name: str = Field(min_length=1)


def _schedule_rows(availability_id: int, schedules: list[AvailabilityScheduleInput]) -> list[AvailabilitySchedule]:
    return [
        AvailabilitySchedule(
            availability_id=availability_id,
            day_name=schedule.day_name,
            start_local=parse_hhmm(schedule.start_time) if schedule.start_time else None,
            end_local=parse_hhmm(schedule.end_time) if schedule.end_time else None,
        )
        for schedule in schedules
    ]


def _schedule_data(row: AvailabilitySchedule) -> dict:
    all_times = row.start_local is None or row.end_local is None
    return {
        "schedule_id": row.id,
        "day_name": row.day_name,
        "start_time": None if all_times else format_hhmm(row.start_local),
        "end_time": None if all_times else format_hhmm(row.end_local),
        "time_range": ALL_TIMES if all_times else f"{format_hhmm(row.start_local)}-{format_hhmm(row.end_local)}",
    }


def _availability_data(availability: Availability, schedules: Optional[list[AvailabilitySchedule]] = None) -> dict:
    data = {
        "availability_id": availability.id,
        "availability_code": availability.availability_code,
        "name": availability.name,
        "created_at": availability.created_at.isoformat(),
    }
    if schedules is not None:
        data["schedules"] = [_schedule_data(row) for row in schedules]
    return data


def _availability_schedules(db: Session, availability_id: int) -> list[AvailabilitySchedule]:
    return (
        db.query(AvailabilitySchedule)
        .filter(AvailabilitySchedule.availability_id == availability_id)
        .order_by(AvailabilitySchedule.id)
        .all()
    )


@app.post("/api/v1/availabilities", tags=["Availability"])
def create_availability(payload: AvailabilityCreate, db: Session = Depends(get_db)) -> dict:
    availability = Availability(
        availability_code=next_code(db, Availability.availability_code, DEFAULT_PREFIX),
        name=payload.name,
        store_code=settings.store_code,
        created_at=_now(),
    )
    db.add(availability)
    _flush(db, "availability")
    rows = _schedule_rows(availability.id, payload.schedules)
    db.add_all(rows)
    _commit(db, "availability")
    db.refresh(availability)
    logger.info("created availability %s with %d schedule rows", availability.availability_code, len(rows))
    return {
        "data": _availability_data(availability, _availability_schedules(db, availability.id)),
        "meta": _meta(),
    }


@app.get("/api/v1/availabilities/{availability_id}", tags=["Availability"])
def get_availability(availability_id: int, db: Session = Depends(get_db)) -> dict:
    availability = _get_or_404(db, Availability, availability_id, "availability")
    return {
        "data": _availability_data(availability, _availability_schedules(db, availability.id)),
        "meta": _meta(),
    }


@app.get("/api/v1/availabilities", tags=["Availability"])
def list_availabilities(
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    rows, next_cursor = _paginate_by_id(db.query(Availability), Availability, limit, cursor)
    return {
        "data": [_availability_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/availabilities/{availability_id}/schedules", tags=["Availability"])
def replace_availability_schedules(
    availability_id: int, payload: AvailabilitySchedulesReplace, db: Session = Depends(get_db)
) -> dict:
    availability = _get_or_404(db, Availability, availability_id, "availability")
    db.query(AvailabilitySchedule).filter(
        AvailabilitySchedule.availability_id == availability_id
    ).delete()
    db.add_all(_schedule_rows(availability_id, payload.schedules))
    _commit(db, "availability schedule")
    return {
        "data": _availability_data(availability, _availability_schedules(db, availability_id)),
        "meta": _meta(),
    }


@app.put("/api/v1/availabilities/{availability_id}", tags=["Availability"])
def update_availability(availability_id: int, payload: AvailabilityUpdate, db: Session = Depends(get_db)) -> dict:
    availability = _get_or_404(db, Availability, availability_id, "availability")
    availability.name = payload.name
    _commit(db, "availability")
    db.refresh(availability)
    return {
        "data": _availability_data(availability, _availability_schedules(db, availability_id)),
        "meta": _meta(),
    }


@app.delete("/api/v1/availabilities/{availability_id}", tags=["Availability"])
def delete_availability(availability_id: int, db: Session = Depends(get_db)) -> dict:
    availability = _get_or_404(db, Availability, availability_id, "availability")
    code = availability.availability_code
    in_use = (
        db.query(MenuMaster).filter(MenuMaster.availability_code == code).first()
        or db.query(MenuCategory).filter(MenuCategory.availability_code == code).first()
        or db.query(MenuItem).filter(MenuItem.availability_code == code).first()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="availability is still assigned")
    db.query(AvailabilitySchedule).filter(
        AvailabilitySchedule.availability_id == availability_id
    ).delete()
    db.delete(availability)
    _commit(db, "availability")
    return {"data": {"availability_id": availability_id, "deleted": True}, "meta": _meta()}


# Time events


class TimeEventWindowInput(Payload):
    day_of_week: int = Field(ge=0, le=6)
    start_time: HHMM
    end_time: HHMM


class TimeEventUpsert(Payload):
    model_config = {"json_schema_extra": {"example": {"event_name": "Happy Hour", "percent_discount": "20", "windows": [{"day_of_week": day, "start_time": "15:00", "end_time": "18:00"} for day in range(5)]}}}
    event_name: str = Field(min_length=1)
    amount_add: Optional[Money] = None
    amount_discount: Optional[Money] = None
    percent_add: Optional[Rate] = None
    percent_discount: Optional[Rate] = None
    event_start_date: Optional[date] = None
    event_end_date: Optional[date] = None
    is_active: bool = True
    windows: list[TimeEventWindowInput] = []

    @field_validator(*ADJUSTMENT_PRECEDENCE)
    @classmethod
    def _zero_is_unset(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return value or None

    @model_validator(mode="after")
    def _consistent(self) -> "TimeEventUpsert":
        adjustments = [name for name in ADJUSTMENT_PRECEDENCE if getattr(self, name) is not None]
        if len(adjustments) > 1:
            raise ValueError(f"only one price adjustment may be set, got {', '.join(adjustments)}")
        if (
            self.event_start_date is not None
            and self.event_end_date is not None
            and self.event_end_date < self.event_start_date
        ):
            raise ValueError("event_end_date must not be before event_start_date")
        days = [window.day_of_week for window in self.windows]
        if len(days) != len(set(days)):
            raise ValueError("each day_of_week may appear only once")
        self.schedule()
        return self

    def schedule(self) -> EventSchedule:
        return EventSchedule.from_mapping(
            {window.day_of_week: (window.start_time, window.end_time) for window in self.windows}
        )


def _event_windows(db: Session, event_ids: list[int]) -> dict[int, list[TimeEventWindow]]:
    grouped: dict[int, list[TimeEventWindow]] = {event_id: [] for event_id in event_ids}
    if not event_ids:
        return grouped
    rows = (
        db.query(TimeEventWindow)
        .filter(TimeEventWindow.time_event_id.in_(event_ids))
        .order_by(TimeEventWindow.day_of_week)
        .all()
    )
    for row in rows:
        grouped[row.time_event_id].append(row)
    return grouped


def _time_event_data(event: TimeEvent, windows: list[TimeEventWindow]) -> dict:
    return {
        "time_event_id": event.id,
        "event_code": event.event_code,
        "event_name": event.event_name,
        "amount_add": _money(event.amount_add),
        "amount_discount": _money(event.amount_discount),
        "percent_add": _rate(event.percent_add),
        "percent_discount": _rate(event.percent_discount),
        "event_start_date": event.event_start_date.isoformat() if event.event_start_date else None,
        "event_end_date": event.event_end_date.isoformat() if event.event_end_date else None,
        "is_active": event.is_active,
        "windows": [
            {
                "day_of_week": row.day_of_week,
                "day_name": DAY_NAMES[row.day_of_week],
                "start_time": format_hhmm(row.start_local),
                "end_time": format_hhmm(row.end_local),
            }
            for row in windows
        ],
    }


def _store_event(db: Session, event: TimeEvent, payload: TimeEventUpsert) -> list[TimeEventWindow]:
    for name in ("event_name", *ADJUSTMENT_PRECEDENCE, "event_start_date", "event_end_date", "is_active"):
        setattr(event, name, getattr(payload, name))
    _flush(db, "time event")
    db.query(TimeEventWindow).filter(TimeEventWindow.time_event_id == event.id).delete()
    rows = [
        TimeEventWindow(
            time_event_id=event.id,
            day_of_week=day,
            start_local=window.start,
            end_local=window.end,
        )
        for day, window in payload.schedule().as_dict().items()
    ]
    db.add_all(rows)
    return rows


@app.post("/api/v1/time-events", tags=["Time Events"])
def create_time_event(payload: TimeEventUpsert, db: Session = Depends(get_db)) -> dict:
    event = TimeEvent(
        event_code=next_code(db, TimeEvent.event_code, EVENT_PREFIX),
        store_code=settings.store_code,
        created_at=_now(),
    )
    db.add(event)
    rows = _store_event(db, event, payload)
    _commit(db, "time event")
    db.refresh(event)
    logger.info("created time event %s (%s)", event.event_code, event.event_name)
    return {"data": _time_event_data(event, rows), "meta": _meta()}


@app.get("/api/v1/time-events/{time_event_id}", tags=["Time Events"])
def get_time_event(time_event_id: int, db: Session = Depends(get_db)) -> dict:
    event = _get_or_404(db, TimeEvent, time_event_id, "time event")
    windows = _event_windows(db, [event.id])[event.id]
    return {"data": _time_event_data(event, windows), "meta": _meta()}


@app.get("/api/v1/time-events", tags=["Time Events"])
def list_time_events(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(TimeEvent)
    if is_active is not None:
        query = query.filter(TimeEvent.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, TimeEvent, limit, cursor)
    windows = _event_windows(db, [row.id for row in rows])
    return {
        "data": [_time_event_data(row, windows[row.id]) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/time-events/{time_event_id}", tags=["Time Events"])
def update_time_event(time_event_id: int, payload: TimeEventUpsert, db: Session = Depends(get_db)) -> dict:
    event = _get_or_404(db, TimeEvent, time_event_id, "time event")
    rows = _store_event(db, event, payload)
    _commit(db, "time event")
    db.refresh(event)
    logger.info("updated time event %s", event.event_code)
    return {"data": _time_event_data(event, rows), "meta": _meta()}


@app.delete("/api/v1/time-events/{time_event_id}", tags=["Time Events"])
def delete_time_event(time_event_id: int, db: Session = Depends(get_db)) -> dict:
    event = _get_or_404(db, TimeEvent, time_event_id, "time event")
    db.query(MenuMasterEvent).filter(MenuMasterEvent.time_event_id == time_event_id).delete()
    db.query(TimeEventWindow).filter(TimeEventWindow.time_event_id == time_event_id).delete()
    db.delete(event)
    _commit(db, "time event")
    return {"data": {"time_event_id": time_event_id, "deleted": True}, "meta": _meta()}


# Modifier groups


class ModifierGroupCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"name": "Size", "min_select": 1, "max_select": 1, "is_required": True}}}
    name: str = Field(min_length=1)
    min_select: int = Field(default=0, ge=0)
    max_select: Optional[int] = Field(default=None, ge=1)
    is_required: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def _bounds(self) -> "ModifierGroupCreate":
        if self.max_select is not None and self.max_select < self.min_select:
            raise ValueError("max_select must not be below min_select")
        return self


class ModifierItemCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"modifier_group_id": 1, "name": "Large", "price": "1.50"}}}
    modifier_group_id: int
    name: str = Field(min_length=1)
    price: Money = Decimal("0")
    is_active: bool = True


class ModifierGroupUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    min_select: Optional[int] = Field(default=None, ge=0)
    max_select: Optional[int] = Field(default=None, ge=1)
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None


class ModifierItemUpdate(Payload):
    modifier_group_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1)
    price: Optional[Money] = None
    is_active: Optional[bool] = None


def _modifier_group_data(group: ModifierGroup) -> dict:
    return {
        "modifier_group_id": group.id,
        "modifier_group_code": group.modifier_group_code,
        "name": group.name,
        "min_select": group.min_select,
        "max_select": group.max_select,
        "is_required": group.is_required,
        "is_active": group.is_active,
    }


def _modifier_item_data(item: ModifierItem) -> dict:
    return {
        "modifier_item_id": item.id,
        "modifier_item_code": item.modifier_item_code,
        "modifier_group_id": item.modifier_group_id,
        "name": item.name,
        "price": _money(item.price),
        "is_active": item.is_active,
    }


@app.post("/api/v1/modifier-groups", tags=["Modifier Groups"])
def create_modifier_group(payload: ModifierGroupCreate, db: Session = Depends(get_db)) -> dict:
    group = ModifierGroup(
        modifier_group_code=next_code(db, ModifierGroup.modifier_group_code, DEFAULT_PREFIX),
        store_code=settings.store_code,
        created_at=_now(),
        **payload.model_dump(),
    )
    db.add(group)
    _commit(db, "modifier group")
    db.refresh(group)
    return {"data": _modifier_group_data(group), "meta": _meta()}


@app.get("/api/v1/modifier-groups/{modifier_group_id}", tags=["Modifier Groups"])
def get_modifier_group(modifier_group_id: int, db: Session = Depends(get_db)) -> dict:
    group = _get_or_404(db, ModifierGroup, modifier_group_id, "modifier group")
    items = (
        db.query(ModifierItem)
        .filter(ModifierItem.modifier_group_id == group.id)
        .order_by(ModifierItem.id)
        .all()
    )
    data = _modifier_group_data(group)
    data["items"] = [_modifier_item_data(item) for item in items]
    return {"data": data, "meta": _meta()}


@app.get("/api/v1/modifier-groups", tags=["Modifier Groups"])
def list_modifier_groups(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(ModifierGroup)
    if is_active is not None:
        query = query.filter(ModifierGroup.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, ModifierGroup, limit, cursor)
    return {
        "data": [_modifier_group_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/modifier-groups/{modifier_group_id}", tags=["Modifier Groups"])
def update_modifier_group(
    modifier_group_id: int, payload: ModifierGroupUpdate, db: Session = Depends(get_db)
) -> dict:
    group = _get_or_404(db, ModifierGroup, modifier_group_id, "modifier group")
    _apply_changes(
        group,
        payload.model_dump(exclude_unset=True),
        required=("name", "min_select", "is_required", "is_active"),
    )
    if group.max_select is not None and group.max_select < group.min_select:
        db.rollback()
        raise HTTPException(status_code=422, detail="max_select must not be below min_select")
    _commit(db, "modifier group")
    db.refresh(group)
    return {"data": _modifier_group_data(group), "meta": _meta()}


@app.delete("/api/v1/modifier-groups/{modifier_group_id}", tags=["Modifier Groups"])
def delete_modifier_group(modifier_group_id: int, db: Session = Depends(get_db)) -> dict:
    group = _get_or_404(db, ModifierGroup, modifier_group_id, "modifier group")
    assigned = (
        db.query(MenuCategoryModifierGroup)
        .filter(MenuCategoryModifierGroup.modifier_group_id == modifier_group_id)
        .first()
        or db.query(MenuItemModifierGroup)
        .filter(MenuItemModifierGroup.modifier_group_id == modifier_group_id)
        .first()
    )
    if assigned:
        raise HTTPException(status_code=409, detail="modifier group is still assigned")
    db.query(ModifierItem).filter(ModifierItem.modifier_group_id == modifier_group_id).delete()
    db.delete(group)
    _commit(db, "modifier group")
    return {"data": {"modifier_group_id": modifier_group_id, "deleted": True}, "meta": _meta()}


@app.post("/api/v1/modifier-items", tags=["Modifier Items"])
def create_modifier_item(payload: ModifierItemCreate, db: Session = Depends(get_db)) -> dict:
    _get_or_404(db, ModifierGroup, payload.modifier_group_id, "modifier group")
    item = ModifierItem(
        modifier_item_code=next_code(db, ModifierItem.modifier_item_code, DEFAULT_PREFIX),
        **payload.model_dump(),
    )
    db.add(item)
    _commit(db, "modifier item")
    db.refresh(item)
    return {"data": _modifier_item_data(item), "meta": _meta()}


@app.get("/api/v1/modifier-items", tags=["Modifier Items"])
def list_modifier_items(
    modifier_group_id: Optional[int] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(ModifierItem)
    if modifier_group_id is not None:
        query = query.filter(ModifierItem.modifier_group_id == modifier_group_id)
    rows, next_cursor = _paginate_by_id(query, ModifierItem, limit, cursor)
    return {
        "data": [_modifier_item_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/modifier-items/{modifier_item_id}", tags=["Modifier Items"])
def update_modifier_item(modifier_item_id: int, payload: ModifierItemUpdate, db: Session = Depends(get_db)) -> dict:
    item = _get_or_404(db, ModifierItem, modifier_item_id, "modifier item")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("modifier_group_id") is not None:
        _get_or_404(db, ModifierGroup, changes["modifier_group_id"], "modifier group")
    _apply_changes(item, changes, required=("modifier_group_id", "name", "price", "is_active"))
    _commit(db, "modifier item")
    db.refresh(item)
    return {"data": _modifier_item_data(item), "meta": _meta()}


@app.delete("/api/v1/modifier-items/{modifier_item_id}", tags=["Modifier Items"])
def delete_modifier_item(modifier_item_id: int, db: Session = Depends(get_db)) -> dict:
    item = _get_or_404(db, ModifierItem, modifier_item_id, "modifier item")
    db.delete(item)
    _commit(db, "modifier item")
    return {"data": {"modifier_item_id": modifier_item_id, "deleted": True}, "meta": _meta()}


class ModifierGroupAssignment(Payload):
    modifier_group_ids: list[int]


def _check_modifier_groups(db: Session, group_ids: list[int]) -> list[int]:
    unique_ids = sorted(set(group_ids))
    found = {row.id for row in db.query(ModifierGroup).filter(ModifierGroup.id.in_(unique_ids)).all()}
    if len(found) != len(unique_ids):
        raise HTTPException(status_code=404, detail="modifier group not found")
    return unique_ids


# Menu masters


def _check_reference(db: Session, column, code: Optional[str], label: str) -> None:
    if code and not db.query(column).filter(column == code).first():
        raise HTTPException(status_code=404, detail=f"{label} not found")


class MenuMasterCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"name": "Food", "label_name": "FOOD", "color_code": "#FF8800", "tax_code": "T001", "prep_zone_code": "W001"}}}
    name: str = Field(min_length=1)
    label_name: Optional[str] = None
    color_code: Optional[str] = None
    tax_code: Optional[str] = None
    prep_zone_code: Optional[str] = None
    availability_code: Optional[str] = None
    is_active: bool = True


class MenuMasterUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    label_name: Optional[str] = None
    color_code: Optional[str] = None
    tax_code: Optional[str] = None
    prep_zone_code: Optional[str] = None
    availability_code: Optional[str] = None
    is_active: Optional[bool] = None


class MenuMasterEventsReplace(Payload):
    time_event_ids: list[int]


def _check_master_references(db: Session, changes: dict) -> None:
    _check_reference(db, Tax.tax_code, changes.get("tax_code"), "tax")
    _check_reference(db, PrepZone.prep_zone_code, changes.get("prep_zone_code"), "prep zone")
    _check_reference(db, Availability.availability_code, changes.get("availability_code"), "availability")


def _menu_master_data(master: MenuMaster) -> dict:
    return {
        "menu_master_id": master.id,
        "menu_master_code": master.menu_master_code,
        "name": master.name,
        "label_name": master.label_name,
        "color_code": master.color_code,
        "tax_code": master.tax_code,
        "prep_zone_code": master.prep_zone_code,
        "availability_code": master.availability_code,
        "is_active": master.is_active,
        "created_at": master.created_at.isoformat(),
    }


@app.post("/api/v1/menu-masters", tags=["Menu Masters"])
def create_menu_master(payload: MenuMasterCreate, db: Session = Depends(get_db)) -> dict:
    _check_master_references(db, payload.model_dump())
    master = MenuMaster(
        menu_master_code=next_code(db, MenuMaster.menu_master_code, DEFAULT_PREFIX),
        store_code=settings.store_code,
        created_at=_now(),
        **payload.model_dump(),
    )
    db.add(master)
    _commit(db, "menu master")
    db.refresh(master)
    logger.info("created menu master %s", master.menu_master_code)
    return {"data": _menu_master_data(master), "meta": _meta()}


@app.get("/api/v1/menu-masters/{menu_master_id}", tags=["Menu Masters"])
def get_menu_master(menu_master_id: int, db: Session = Depends(get_db)) -> dict:
    master = _get_or_404(db, MenuMaster, menu_master_id, "menu master")
    return {"data": _menu_master_data(master), "meta": _meta()}


@app.get("/api/v1/menu-masters", tags=["Menu Masters"])
def list_menu_masters(
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(MenuMaster)
    if is_active is not None:
        query = query.filter(MenuMaster.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, MenuMaster, limit, cursor)
    return {
        "data": [_menu_master_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/menu-masters/{menu_master_id}", tags=["Menu Masters"])
def update_menu_master(menu_master_id: int, payload: MenuMasterUpdate, db: Session = Depends(get_db)) -> dict:
    master = _get_or_404(db, MenuMaster, menu_master_id, "menu master")
    changes = payload.model_dump(exclude_unset=True)
    _check_master_references(db, changes)
    _apply_changes(master, changes, required=("name", "is_active"))
    _commit(db, "menu master")
    db.refresh(master)
    return {"data": _menu_master_data(master), "meta": _meta()}


@app.delete("/api/v1/menu-masters/{menu_master_id}", tags=["Menu Masters"])
def delete_menu_master(menu_master_id: int, db: Session = Depends(get_db)) -> dict:
    master = _get_or_404(db, MenuMaster, menu_master_id, "menu master")
    if db.query(MenuCategory).filter(MenuCategory.menu_master_id == menu_master_id).first():
        raise HTTPException(status_code=409, detail="menu master still has categories")
    db.query(MenuMasterEvent).filter(MenuMasterEvent.menu_master_id == menu_master_id).delete()
    db.delete(master)
    _commit(db, "menu master")
    return {"data": {"menu_master_id": menu_master_id, "deleted": True}, "meta": _meta()}


@app.get("/api/v1/menu-masters/{menu_master_id}/events", tags=["Menu Masters"])
def list_menu_master_events(menu_master_id: int, db: Session = Depends(get_db)) -> dict:
    _get_or_404(db, MenuMaster, menu_master_id, "menu master")
    events = _master_events(db, menu_master_id)
    windows = _event_windows(db, [event.id for event in events])
    return {"data": [_time_event_data(event, windows[event.id]) for event in events], "meta": _meta()}


@app.put("/api/v1/menu-masters/{menu_master_id}/events", tags=["Menu Masters"])
def replace_menu_master_events(
    menu_master_id: int, payload: MenuMasterEventsReplace, db: Session = Depends(get_db)
) -> dict:
    _get_or_404(db, MenuMaster, menu_master_id, "menu master")
    event_ids = sorted(set(payload.time_event_ids))
    found = {row.id for row in db.query(TimeEvent).filter(TimeEvent.id.in_(event_ids)).all()}
    if len(found) != len(event_ids):
        raise HTTPException(status_code=404, detail="time event not found")
    db.query(MenuMasterEvent).filter(MenuMasterEvent.menu_master_id == menu_master_id).delete()
    db.add_all(
        MenuMasterEvent(menu_master_id=menu_master_id, time_event_id=event_id) for event_id in event_ids
    )
    _commit(db, "menu master events")
    return {"data": {"menu_master_id": menu_master_id, "time_event_ids": event_ids}, "meta": _meta()}


# Menu categories


class MenuCategoryCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"menu_master_id": 1, "name": "Burgers", "color_code": "#AA3300"}}}
    menu_master_id: int
    name: str = Field(min_length=1)
    color_code: Optional[str] = None
    availability_code: Optional[str] = None
    is_active: bool = True


class MenuCategoryUpdate(Payload):
    menu_master_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1)
    color_code: Optional[str] = None
    availability_code: Optional[str] = None
    is_active: Optional[bool] = None


def _menu_category_data(category: MenuCategory, modifier_group_ids: Optional[list[int]] = None) -> dict:
    data = {
        "menu_category_id": category.id,
        "menu_category_code": category.menu_category_code,
        "menu_master_id": category.menu_master_id,
        "name": category.name,
        "color_code": category.color_code,
        "availability_code": category.availability_code,
        "is_active": category.is_active,
        "created_at": category.created_at.isoformat(),
    }
    if modifier_group_ids is not None:
        data["modifier_group_ids"] = modifier_group_ids
    return data


def _category_group_ids(db: Session, category_id: int) -> list[int]:
    rows = (
        db.query(MenuCategoryModifierGroup)
        .filter(MenuCategoryModifierGroup.menu_category_id == category_id)
        .order_by(MenuCategoryModifierGroup.modifier_group_id)
        .all()
    )
    return [row.modifier_group_id for row in rows]


@app.post("/api/v1/menu-categories", tags=["Menu Categories"])
def create_menu_category(payload: MenuCategoryCreate, db: Session = Depends(get_db)) -> dict:
    _get_or_404(db, MenuMaster, payload.menu_master_id, "menu master")
    _check_reference(db, Availability.availability_code, payload.availability_code, "availability")
    category = MenuCategory(
        menu_category_code=next_code(db, MenuCategory.menu_category_code, DEFAULT_PREFIX),
        store_code=settings.store_code,
        created_at=_now(),
        **payload.model_dump(),
    )
    db.add(category)
    _commit(db, "menu category")
    db.refresh(category)
    return {"data": _menu_category_data(category, []), "meta": _meta()}


@app.get("/api/v1/menu-categories/{menu_category_id}", tags=["Menu Categories"])
def get_menu_category(menu_category_id: int, db: Session = Depends(get_db)) -> dict:
    category = _get_or_404(db, MenuCategory, menu_category_id, "menu category")
    return {
        "data": _menu_category_data(category, _category_group_ids(db, category.id)),
        "meta": _meta(),
    }


@app.get("/api/v1/menu-categories", tags=["Menu Categories"])
def list_menu_categories(
    menu_master_id: Optional[int] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(MenuCategory)
    if menu_master_id is not None:
        query = query.filter(MenuCategory.menu_master_id == menu_master_id)
    if is_active is not None:
        query = query.filter(MenuCategory.is_active == is_active)
    rows, next_cursor = _paginate_by_id(query, MenuCategory, limit, cursor)
    return {
        "data": [_menu_category_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/menu-categories/{menu_category_id}", tags=["Menu Categories"])
def update_menu_category(
    menu_category_id: int, payload: MenuCategoryUpdate, db: Session = Depends(get_db)
) -> dict:
    category = _get_or_404(db, MenuCategory, menu_category_id, "menu category")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("menu_master_id") is not None:
        _get_or_404(db, MenuMaster, changes["menu_master_id"], "menu master")
    _check_reference(db, Availability.availability_code, changes.get("availability_code"), "availability")
    _apply_changes(category, changes, required=("menu_master_id", "name", "is_active"))
    _commit(db, "menu category")
    db.refresh(category)
    return {
        "data": _menu_category_data(category, _category_group_ids(db, category.id)),
        "meta": _meta(),
    }


@app.put("/api/v1/menu-categories/{menu_category_id}/modifier-groups", tags=["Menu Categories"])
def replace_menu_category_modifier_groups(
    menu_category_id: int, payload: ModifierGroupAssignment, db: Session = Depends(get_db)
) -> dict:
    category = _get_or_404(db, MenuCategory, menu_category_id, "menu category")
    group_ids = _check_modifier_groups(db, payload.modifier_group_ids)
    db.query(MenuCategoryModifierGroup).filter(
        MenuCategoryModifierGroup.menu_category_id == menu_category_id
    ).delete()
    db.add_all(
        MenuCategoryModifierGroup(menu_category_id=menu_category_id, modifier_group_id=group_id)
        for group_id in group_ids
    )
    _commit(db, "menu category modifier groups")
    return {"data": _menu_category_data(category, group_ids), "meta": _meta()}


@app.delete("/api/v1/menu-categories/{menu_category_id}", tags=["Menu Categories"])
def delete_menu_category(menu_category_id: int, db: Session = Depends(get_db)) -> dict:
    category = _get_or_404(db, MenuCategory, menu_category_id, "menu category")
    if db.query(MenuItem).filter(MenuItem.menu_category_id == menu_category_id).first():
        raise HTTPException(status_code=409, detail="menu category still has items")
    db.query(MenuCategoryModifierGroup).filter(
        MenuCategoryModifierGroup.menu_category_id == menu_category_id
    ).delete()
    db.delete(category)
    _commit(db, "menu category")
    return {"data": {"menu_category_id": menu_category_id, "deleted": True}, "meta": _meta()}


# Menu items


class MenuItemCreate(Payload):
    model_config = {"json_schema_extra": {"example": {"menu_category_id": 1, "name": "Classic Burger", "base_price": "250.00", "card_price": "255.00", "inherit_modifier_group": True, "tax_code": "T001"}}}
    menu_category_id: int
    name: str = Field(min_length=1)
    kitchen_name: Optional[str] = None
    label_name: Optional[str] = None
    color_code: Optional[str] = None
    description: Optional[str] = None
    calories: Optional[int] = Field(default=None, ge=0)
    sku_plu: Optional[str] = None
    contains_alcohol: bool = False
    base_price: Money
    card_price: Optional[Money] = None
    cash_price: Optional[Money] = None
    tax_code: Optional[str] = None
    inherit_modifier_group: bool = True
    availability_code: Optional[str] = None
    is_out_of_stock: bool = False
    is_active: bool = True
    modifier_group_ids: list[int] = []


class MenuItemUpdate(Payload):
    menu_category_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1)
    kitchen_name: Optional[str] = None
    label_name: Optional[str] = None
    color_code: Optional[str] = None
    description: Optional[str] = None
    calories: Optional[int] = Field(default=None, ge=0)
    sku_plu: Optional[str] = None
    contains_alcohol: Optional[bool] = None
    base_price: Optional[Money] = None
    card_price: Optional[Money] = None
    cash_price: Optional[Money] = None
    tax_code: Optional[str] = None
    inherit_modifier_group: Optional[bool] = None
    availability_code: Optional[str] = None
    is_out_of_stock: Optional[bool] = None
    is_active: Optional[bool] = None


_ITEM_REQUIRED = (
    "menu_category_id",
    "name",
    "contains_alcohol",
    "base_price",
    "inherit_modifier_group",
    "is_out_of_stock",
    "is_active",
)


def _item_group_ids(db: Session, item_id: int) -> list[int]:
    rows = (
        db.query(MenuItemModifierGroup)
        .filter(MenuItemModifierGroup.menu_item_id == item_id)
        .order_by(MenuItemModifierGroup.modifier_group_id)
        .all()
    )
    return [row.modifier_group_id for row in rows]


def _menu_item_data(item: MenuItem, modifier_group_ids: Optional[list[int]] = None) -> dict:
    data = {
        "menu_item_id": item.id,
        "menu_item_code": item.menu_item_code,
        "menu_category_id": item.menu_category_id,
        "name": item.name,
        "kitchen_name": item.kitchen_name,
        "label_name": item.label_name,
        "color_code": item.color_code,
        "description": item.description,
        "calories": item.calories,
        "sku_plu": item.sku_plu,
        "contains_alcohol": item.contains_alcohol,
        "base_price": _money(item.base_price),
        "card_price": _money(item.card_price),
        "cash_price": _money(item.cash_price),
        "tax_code": item.tax_code,
        "inherit_modifier_group": item.inherit_modifier_group,
        "availability_code": item.availability_code,
        "is_out_of_stock": item.is_out_of_stock,
        "is_active": item.is_active,
        "created_at": item.created_at.isoformat(),
    }
    if modifier_group_ids is not None:
        data["modifier_group_ids"] = modifier_group_ids
    return data


def _check_item_references(db: Session, changes: dict) -> None:
    if changes.get("menu_category_id") is not None:
        _get_or_404(db, MenuCategory, changes["menu_category_id"], "menu category")
    _check_reference(db, Tax.tax_code, changes.get("tax_code"), "tax")
    _check_reference(db, Availability.availability_code, changes.get("availability_code"), "availability")


@app.post("/api/v1/menu-items", tags=["Menu Items"])
def create_menu_item(payload: MenuItemCreate, db: Session = Depends(get_db)) -> dict:
    fields = payload.model_dump(exclude={"modifier_group_ids"})
    _check_item_references(db, fields)
    group_ids = _check_modifier_groups(db, payload.modifier_group_ids)
    item = MenuItem(
        menu_item_code=next_code(db, MenuItem.menu_item_code, DEFAULT_PREFIX),
        store_code=settings.store_code,
        created_at=_now(),
        **fields,
    )
    db.add(item)
    _flush(db, "menu item")
    db.add_all(
        MenuItemModifierGroup(menu_item_id=item.id, modifier_group_id=group_id) for group_id in group_ids
    )
    _commit(db, "menu item")
    db.refresh(item)
    logger.info("created menu item %s (%s)", item.menu_item_code, item.name)
    return {"data": _menu_item_data(item, group_ids), "meta": _meta()}


@app.get("/api/v1/menu-items/{menu_item_id}", tags=["Menu Items"])
def get_menu_item(menu_item_id: int, db: Session = Depends(get_db)) -> dict:
    item = _get_or_404(db, MenuItem, menu_item_id, "menu item")
    return {"data": _menu_item_data(item, _item_group_ids(db, item.id)), "meta": _meta()}


@app.get("/api/v1/menu-items", tags=["Menu Items"])
def list_menu_items(
    menu_category_id: Optional[int] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    cursor: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(MenuItem)
    if menu_category_id is not None:
        query = query.filter(MenuItem.menu_category_id == menu_category_id)
    if is_active is not None:
        query = query.filter(MenuItem.is_active == is_active)
    if q is not None:
        query = query.filter(MenuItem.name.ilike(f"%{q}%"))
    rows, next_cursor = _paginate_by_id(query, MenuItem, limit, cursor)
    return {
        "data": [_menu_item_data(row) for row in rows],
        "meta": _list_meta(limit, cursor, next_cursor),
    }


@app.put("/api/v1/menu-items/{menu_item_id}", tags=["Menu Items"])
def update_menu_item(menu_item_id: int, payload: MenuItemUpdate, db: Session = Depends(get_db)) -> dict:
    item = _get_or_404(db, MenuItem, menu_item_id, "menu item")
    changes = payload.model_dump(exclude_unset=True)
    _check_item_references(db, changes)
    _apply_changes(item, changes, required=_ITEM_REQUIRED)
    _commit(db, "menu item")
    db.refresh(item)
    return {"data": _menu_item_data(item, _item_group_ids(db, item.id)), "meta": _meta()}


@app.put("/api/v1/menu-items/{menu_item_id}/modifier-groups", tags=["Menu Items"])
def replace_menu_item_modifier_groups(
    menu_item_id: int, payload: ModifierGroupAssignment, db: Session = Depends(get_db)
) -> dict:
    item = _get_or_404(db, MenuItem, menu_item_id, "menu item")
    group_ids = _check_modifier_groups(db, payload.modifier_group_ids)
    db.query(MenuItemModifierGroup).filter(MenuItemModifierGroup.menu_item_id == menu_item_id).delete()
    db.add_all(
        MenuItemModifierGroup(menu_item_id=menu_item_id, modifier_group_id=group_id) for group_id in group_ids
    )
    _commit(db, "menu item modifier groups")
    return {"data": _menu_item_data(item, group_ids), "meta": _meta()}


@app.delete("/api/v1/menu-items/{menu_item_id}", tags=["Menu Items"])
def delete_menu_item(menu_item_id: int, db: Session = Depends(get_db)) -> dict:
    item = _get_or_404(db, MenuItem, menu_item_id, "menu item")
    db.query(MenuItemModifierGroup).filter(MenuItemModifierGroup.menu_item_id == menu_item_id).delete()
    db.delete(item)
    _commit(db, "menu item")
    return {"data": {"menu_item_id": menu_item_id, "deleted": True}, "meta": _meta()}


# Pricing and availability resolution


def _master_events(db: Session, menu_master_id: int) -> list[TimeEvent]:
    return (
        db.query(TimeEvent)
        .join(MenuMasterEvent, MenuMasterEvent.time_event_id == TimeEvent.id)
        .filter(MenuMasterEvent.menu_master_id == menu_master_id)
        .order_by(TimeEvent.event_code)
        .all()
    )


def _pricing_event(event: TimeEvent, windows: list[TimeEventWindow]) -> PricingEvent:
    return PricingEvent(
        code=event.event_code,
        name=event.event_name,
        is_active=event.is_active,
        start_date=event.event_start_date,
        end_date=event.event_end_date,
        windows={row.day_of_week: TimeWindow(row.start_local, row.end_local) for row in windows},
        amount_add=event.amount_add,
        amount_discount=event.amount_discount,
        percent_add=event.percent_add,
        percent_discount=event.percent_discount,
    )


def _availability_rules(db: Session, codes: set[str]) -> dict[str, AvailabilityRule]:
    if not codes:
        return {}
    availabilities = (
        db.query(Availability).filter(Availability.availability_code.in_(sorted(codes))).all()
    )
    by_id = {row.id: row.availability_code for row in availabilities}
    windows: dict[str, list[AvailabilityWindow]] = {code: [] for code in by_id.values()}
    if by_id:
        schedules = (
            db.query(AvailabilitySchedule)
            .filter(AvailabilitySchedule.availability_id.in_(list(by_id)))
            .all()
        )
        for row in schedules:
            windows[by_id[row.availability_id]].append(
                AvailabilityWindow(
                    day_of_week=None if row.day_name == ALL_DAYS else day_index(row.day_name),
                    start=row.start_local,
                    end=row.end_local,
                )
            )
    return {code: AvailabilityRule(code, tuple(rows)) for code, rows in windows.items()}


def _group_codes(db: Session, link_model, owner_column, owner_ids: list[int]) -> dict[int, frozenset[str]]:
    codes: dict[int, set[str]] = {owner_id: set() for owner_id in owner_ids}
    if owner_ids:
        rows = (
            db.query(owner_column, ModifierGroup.modifier_group_code)
            .join(ModifierGroup, ModifierGroup.id == link_model.modifier_group_id)
            .filter(owner_column.in_(owner_ids), ModifierGroup.is_active.is_(True))
            .all()
        )
        for owner_id, code in rows:
            codes[owner_id].add(code)
    return {owner_id: frozenset(values) for owner_id, values in codes.items()}


class _MenuRules:
    def __init__(self, db: Session, master: Optional[MenuMaster], categories: list[MenuCategory], items: list[MenuItem]):
        self.master = master
        self.categories = {category.id: category for category in categories}
        category_groups = _group_codes(
            db, MenuCategoryModifierGroup, MenuCategoryModifierGroup.menu_category_id, list(self.categories)
        )
        item_groups = _group_codes(db, MenuItemModifierGroup, MenuItemModifierGroup.menu_item_id, [item.id for item in items])
        self.category_rules = {
            category.id: CategoryRule(
                code=category.menu_category_code,
                is_active=category.is_active and (master is None or master.is_active),
                modifier_groups=category_groups[category.id],
                tax_code=master.tax_code if master is not None else None,
            )
            for category in categories
        }
        self.item_rules = {
            item.id: ItemRule(
                code=item.menu_item_code,
                base_price=item.base_price,
                card_price=item.card_price,
                cash_price=item.cash_price,
                is_active=item.is_active,
                is_out_of_stock=item.is_out_of_stock,
                inherit_modifier_group=item.inherit_modifier_group,
                modifier_groups=item_groups[item.id],
                tax_code=item.tax_code,
            )
            for item in items
        }
        self.events: list[PricingEvent] = []
        if master is not None:
            events = _master_events(db, master.id)
            windows = _event_windows(db, [event.id for event in events])
            self.events = [_pricing_event(event, windows[event.id]) for event in events]
        codes = {item.availability_code for item in items}
        codes |= {category.availability_code for category in categories}
        if master is not None:
            codes.add(master.availability_code)
        self.availabilities = _availability_rules(db, {code for code in codes if code})

    def gates_for(self, item: MenuItem) -> list[AvailabilityRule]:
        category = self.categories.get(item.menu_category_id)
        codes = [
            item.availability_code,
            category.availability_code if category is not None else None,
            self.master.availability_code if self.master is not None else None,
        ]
        return [self.availabilities[code] for code in codes if code and code in self.availabilities]

    def entry(self, item: MenuItem) -> tuple[ItemRule, Optional[CategoryRule], list[AvailabilityRule]]:
        return self.item_rules[item.id], self.category_rules.get(item.menu_category_id), self.gates_for(item)

    def resolve(self, item: MenuItem, at: datetime, tender: Optional[str]) -> dict:
        item_rule, category_rule, gates = self.entry(item)
        return self.describe(item, resolve_item(item_rule, category_rule, self.events, gates, at, tender))

    def describe(self, item: MenuItem, resolution: Resolution) -> dict:
        item_rule = self.item_rules[item.id]
        category_rule = self.category_rules.get(item.menu_category_id)
        return {
            "menu_item_id": item.id,
            "menu_item_code": item.menu_item_code,
            "name": item.name,
            "is_orderable": resolution.is_orderable,
            "effective_price": str(resolution.effective_price),
            "base_price": str(resolution.base_price),
            "applied_event_code": resolution.applied_event,
            "reason": resolution.reason,
            "modifier_group_codes": sorted(resolve_modifier_groups(item_rule, category_rule)),
            "tax_code": resolve_tax_code(item_rule, category_rule),
        }


Tender = Optional[Literal["card", "cash"]]


@app.get("/api/v1/menu-items/{menu_item_id}/pricing", tags=["Pricing"])
def get_menu_item_pricing(
    menu_item_id: int,
    at: Optional[datetime] = Query(default=None),
    tender: Tender = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    item = _get_or_404(db, MenuItem, menu_item_id, "menu item")
    category = db.get(MenuCategory, item.menu_category_id)
    master = db.get(MenuMaster, category.menu_master_id) if category is not None else None
    categories = [category] if category is not None else []
    local_at = _local_instant(at)
    data = _MenuRules(db, master, categories, [item]).resolve(item, local_at, tender)
    data["at"] = local_at.isoformat()
    data["tender"] = tender
    return {"data": data, "meta": _meta()}


@app.get("/api/v1/menu-masters/{menu_master_id}/menu", tags=["Pricing"])
def get_resolved_menu(
    menu_master_id: int,
    at: Optional[datetime] = Query(default=None),
    tender: Tender = Query(default=None),
    orderable_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> dict:
    master = _get_or_404(db, MenuMaster, menu_master_id, "menu master")
    categories = (
        db.query(MenuCategory)
        .filter(MenuCategory.menu_master_id == menu_master_id)
        .order_by(MenuCategory.id)
        .all()
    )
    items = (
        db.query(MenuItem)
        .filter(MenuItem.menu_category_id.in_([category.id for category in categories]))
        .order_by(MenuItem.id)
        .all()
        if categories
        else []
    )
    local_at = _local_instant(at)
    rules = _MenuRules(db, master, categories, items)
    resolutions = resolve_menu([rules.entry(item) for item in items], rules.events, local_at, tender)
    by_category: dict[int, list[dict]] = {category.id: [] for category in categories}
    for item in items:
        resolution = resolutions[item.menu_item_code]
        if orderable_only and not resolution.is_orderable:
            continue
        by_category[item.menu_category_id].append(rules.describe(item, resolution))
    logger.debug("resolved %d items of menu master %s", len(items), master.menu_master_code)
    return {
        "data": {
            "menu_master_id": master.id,
            "menu_master_code": master.menu_master_code,
            "at": local_at.isoformat(),
            "tender": tender,
            "categories": [
                {
                    "menu_category_id": category.id,
                    "menu_category_code": category.menu_category_code,
                    "name": category.name,
                    "items": by_category[category.id],
                }
                for category in categories
            ],
        },
        "meta": _meta(),
    }


class OrderLineInput(Payload):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)
    modifier_item_ids: list[int] = []


class OrderQuoteRequest(Payload):
    model_config = {"json_schema_extra": {"example": {"at": "2024-01-03T16:00:00", "tender": "card", "lines": [{"menu_item_id": 1, "quantity": 2, "modifier_item_ids": [1]}]}}}
    lines: list[OrderLineInput] = Field(min_length=1)
    at: Optional[datetime] = None
    tender: Tender = None


def _rules_by_item(db: Session, items: list[MenuItem]) -> dict[int, _MenuRules]:
    categories = {
        row.id: row
        for row in db.query(MenuCategory)
        .filter(MenuCategory.id.in_(sorted({item.menu_category_id for item in items})))
        .all()
    }
    by_master: dict[Optional[int], list[MenuItem]] = {}
    for item in items:
        category = categories.get(item.menu_category_id)
        by_master.setdefault(category.menu_master_id if category else None, []).append(item)
    rules: dict[int, _MenuRules] = {}
    for master_id, master_items in by_master.items():
        master = db.get(MenuMaster, master_id) if master_id is not None else None
        master_categories = [
            category for category in categories.values() if category.menu_master_id == master_id
        ]
        menu_rules = _MenuRules(db, master, master_categories, master_items)
        for item in master_items:
            rules[item.id] = menu_rules
    return rules


@app.post("/api/v1/orders/quote", tags=["Pricing"])
def quote_order(payload: OrderQuoteRequest, db: Session = Depends(get_db)) -> dict:
    item_ids = sorted({line.menu_item_id for line in payload.lines})
    items = {row.id: row for row in db.query(MenuItem).filter(MenuItem.id.in_(item_ids)).all()}
    if len(items) != len(item_ids):
        raise HTTPException(status_code=404, detail="menu item not found")

    modifier_ids = sorted({modifier_id for line in payload.lines for modifier_id in line.modifier_item_ids})
    modifiers = {
        modifier.id: (modifier, group_code)
        for modifier, group_code in db.query(ModifierItem, ModifierGroup.modifier_group_code)
        .join(ModifierGroup, ModifierGroup.id == ModifierItem.modifier_group_id)
        .filter(ModifierItem.id.in_(modifier_ids))
        .all()
    }
    if len(modifiers) != len(modifier_ids):
        raise HTTPException(status_code=404, detail="modifier item not found")

    local_at = _local_instant(payload.at)
    rules = _rules_by_item(db, list(items.values()))
    rates = {tax.tax_code: tax.tax_rate for tax in db.query(Tax).all()}

    lines = []
    for line in payload.lines:
        item = items[line.menu_item_id]
        item_rules = rules[item.id]
        item_rule, category_rule, gates = item_rules.entry(item)
        resolution = resolve_item(item_rule, category_rule, item_rules.events, gates, local_at, payload.tender)
        if not resolution.is_orderable:
            raise HTTPException(
                status_code=409,
                detail=f"menu item {item.menu_item_code} is not orderable ({resolution.reason})",
            )
        allowed_groups = resolve_modifier_groups(item_rule, category_rule)
        chosen = [modifiers[modifier_id] for modifier_id in line.modifier_item_ids]
        for modifier, group_code in chosen:
            if not modifier.is_active or group_code not in allowed_groups:
                raise HTTPException(
                    status_code=422,
                    detail=f"modifier item {modifier.modifier_item_code} does not apply to menu item {item.menu_item_code}",
                )
        tax_code = resolve_tax_code(item_rule, category_rule)
        quote = quote_line(resolution, [modifier.price for modifier, _ in chosen], line.quantity, rates.get(tax_code))
        lines.append(
            {
                "menu_item_id": item.id,
                "menu_item_code": item.menu_item_code,
                "name": item.name,
                "quantity": quote.quantity,
                "modifier_item_codes": [modifier.modifier_item_code for modifier, _ in chosen],
                "applied_event_code": resolution.applied_event,
                "unit_price": str(quote.unit_price),
                "subtotal": str(quote.subtotal),
                "tax_code": tax_code,
                "tax": str(quote.tax),
            }
        )

    subtotal = round_price(sum((Decimal(line["subtotal"]) for line in lines), Decimal("0")))
    tax = round_price(sum((Decimal(line["tax"]) for line in lines), Decimal("0")))
    logger.info("quoted %d order lines at %s", len(lines), local_at.isoformat())
    return {
        "data": {
            "at": local_at.isoformat(),
            "tender": payload.tender,
            "lines": lines,
            "subtotal": str(subtotal),
            "tax": str(tax),
            "total": str(round_price(subtotal + tax)),
        },
        "meta": _meta(),
    }
