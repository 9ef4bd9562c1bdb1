import logging
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from posadmin.codes import DEFAULT_PREFIX, EVENT_PREFIX, TAX_PREFIX, next_code
from posadmin.config import settings
from posadmin.db import Base, SessionLocal, engine
from posadmin.models import (
    Availability,
    AvailabilitySchedule,
    MenuCategory,
    MenuCategoryModifierGroup,
    MenuItem,
    MenuMaster,
    MenuMasterEvent,
    ModifierGroup,
    ModifierItem,
    Tax,
    TimeEvent,
    TimeEventWindow,
)
from posadmin.rules import EventSchedule, parse_hhmm

logger = logging.getLogger(__name__)

HAPPY_HOUR = EventSchedule.from_mapping({day: ("15:00", "18:00") for day in range(5)})


def _stamp() -> dict:
    return {"store_code": settings.store_code, "created_at": datetime.now(ZoneInfo("UTC"))}


def _get_or_create(db: Session, model, lookup: dict, create: dict):
    row = db.query(model).filter_by(**lookup).first()
    if row is not None:
        return row, False
    row = model(**lookup, **create)
    db.add(row)
    db.flush()
    logger.info("seeded %s %s", model.__tablename__, lookup)
    return row, True


def seed(db: Session) -> dict:
    tax, _ = _get_or_create(
        db,
        Tax,
        {"tax_name": "Sales Tax"},
        {"tax_code": next_code(db, Tax.tax_code, TAX_PREFIX), "tax_rate": Decimal("8.250"), **_stamp()},
    )

    weekend, created = _get_or_create(
        db,
        Availability,
        {"name": "Weekend"},
        {"availability_code": next_code(db, Availability.availability_code, DEFAULT_PREFIX), **_stamp()},
    )
    if created:
        db.add_all(
            AvailabilitySchedule(
                availability_id=weekend.id,
                day_name=day,
                start_local=parse_hhmm("10:00"),
                end_local=parse_hhmm("22:00"),
            )
            for day in ("Saturday", "Sunday")
        )

    food, _ = _get_or_create(
        db,
        MenuMaster,
        {"name": "Food"},
        {
            "menu_master_code": next_code(db, MenuMaster.menu_master_code, DEFAULT_PREFIX),
            "label_name": "FOOD",
            "tax_code": tax.tax_code,
            **_stamp(),
        },
    )

    categories = {}
    for name in ("Mains", "Drinks", "Brunch"):
        categories[name], _ = _get_or_create(
            db,
            MenuCategory,
            {"menu_master_id": food.id, "name": name},
            {
                "menu_category_code": next_code(db, MenuCategory.menu_category_code, DEFAULT_PREFIX),
                "availability_code": weekend.availability_code if name == "Brunch" else None,
                **_stamp(),
            },
        )

    size, created = _get_or_create(
        db,
        ModifierGroup,
        {"name": "Size"},
        {
            "modifier_group_code": next_code(db, ModifierGroup.modifier_group_code, DEFAULT_PREFIX),
            "min_select": 1,
            "max_select": 1,
            "is_required": True,
            **_stamp(),
        },
    )
    if created:
        for label, price in (("Regular", Decimal("0")), ("Large", Decimal("1.50"))):
            db.add(
                ModifierItem(
                    modifier_item_code=next_code(db, ModifierItem.modifier_item_code, DEFAULT_PREFIX),
                    modifier_group_id=size.id,
                    name=label,
                    price=price,
                )
            )
            db.flush()
        db.add(MenuCategoryModifierGroup(menu_category_id=categories["Drinks"].id, modifier_group_id=size.id))

    for category, name, price in (
        ("Mains", "Classic Burger", Decimal("250.00")),
        ("Mains", "Veggie Bowl", Decimal("180.00")),
        ("Drinks", "Iced Tea", Decimal("60.00")),
        ("Brunch", "Eggs Benedict", Decimal("220.00")),
    ):
        _get_or_create(
            db,
            MenuItem,
            {"menu_category_id": categories[category].id, "name": name},
            {
                "menu_item_code": next_code(db, MenuItem.menu_item_code, DEFAULT_PREFIX),
                "base_price": price,
                **_stamp(),
            },
        )

    happy_hour, created = _get_or_create(
        db,
        TimeEvent,
        {"event_name": "Happy Hour"},
        {
            "event_code": next_code(db, TimeEvent.event_code, EVENT_PREFIX),
            "percent_discount": Decimal("20"),
            **_stamp(),
        },
    )
    if created:
        db.add_all(
            TimeEventWindow(
                time_event_id=happy_hour.id,
                day_of_week=day,
                start_local=window.start,
                end_local=window.end,
            )
            for day, window in HAPPY_HOUR.as_dict().items()
        )
        db.add(MenuMasterEvent(menu_master_id=food.id, time_event_id=happy_hour.id))

    db.commit()
    return {
        "tax_code": tax.tax_code,
        "menu_master_code": food.menu_master_code,
        "event_code": happy_hour.event_code,
        "availability_code": weekend.availability_code,
    }


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        codes = seed(db)
    finally:
        db.close()
    logger.info("seed complete: %s", codes)


if __name__ == "__main__":
    main()
