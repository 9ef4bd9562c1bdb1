import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from posadmin.db import Base
from posadmin.main import app, get_db

WEEKDAYS_15_TO_18 = [{"day_of_week": day, "start_time": "15:00", "end_time": "18:00"} for day in range(5)]


def _make_client() -> TestClient:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _create_menu(client: TestClient, base_price: str = "250.00") -> dict:
    tax_resp = client.post("/api/v1/taxes", json={"tax_name": "VAT", "tax_rate": "5"})
    assert tax_resp.status_code == 200
    tax_code = tax_resp.json()["data"]["tax_code"]

    master_resp = client.post("/api/v1/menu-masters", json={"name": "Food", "tax_code": tax_code})
    assert master_resp.status_code == 200
    master_id = master_resp.json()["data"]["menu_master_id"]

    category_resp = client.post("/api/v1/menu-categories", json={"menu_master_id": master_id, "name": "Mains"})
    assert category_resp.status_code == 200
    category_id = category_resp.json()["data"]["menu_category_id"]

    item_resp = client.post(
        "/api/v1/menu-items",
        json={"menu_category_id": category_id, "name": "Classic Burger", "base_price": base_price},
    )
    assert item_resp.status_code == 200
    return {
        "tax_code": tax_code,
        "menu_master_id": master_id,
        "menu_category_id": category_id,
        "menu_item_id": item_resp.json()["data"]["menu_item_id"],
    }


def _link_happy_hour(client: TestClient, master_id: int) -> str:
    event_resp = client.post(
        "/api/v1/time-events",
        json={"event_name": "Happy Hour", "percent_discount": "20", "windows": WEEKDAYS_15_TO_18},
    )
    assert event_resp.status_code == 200
    event = event_resp.json()["data"]
    link_resp = client.put(f"/api/v1/menu-masters/{master_id}/events", json={"time_event_ids": [event["time_event_id"]]})
    assert link_resp.status_code == 200
    return event["event_code"]


def test_health_endpoints() -> None:
    client = _make_client()
    with client:
        assert client.get("/").json() == {"status": "ok"}
        assert client.get("/health").json() == {"status": "healthy"}


def test_happy_hour_pricing_flow() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        event_code = _link_happy_hour(client, menu["menu_master_id"])
        assert event_code == "TE001"

        during = client.get(
            f"/api/v1/menu-items/{menu['menu_item_id']}/pricing", params={"at": "2024-01-03T16:00:00"}
        )
        assert during.status_code == 200
        data = during.json()["data"]
        assert data["is_orderable"] is True
        assert data["effective_price"] == "200.00"
        assert data["base_price"] == "250.00"
        assert data["applied_event_code"] == "TE001"
        assert data["tax_code"] == menu["tax_code"]

        after = client.get(
            f"/api/v1/menu-items/{menu['menu_item_id']}/pricing", params={"at": "2024-01-03T19:00:00"}
        )
        assert after.json()["data"]["effective_price"] == "250.00"
        assert after.json()["data"]["applied_event_code"] is None


def test_pricing_converts_aware_instant_to_store_timezone() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        _link_happy_hour(client, menu["menu_master_id"])
        resp = client.get(
            f"/api/v1/menu-items/{menu['menu_item_id']}/pricing", params={"at": "2024-01-03T21:00:00+05:00"}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["effective_price"] == "200.00"


def test_tender_prices_and_bad_tender() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        update = client.put(f"/api/v1/menu-items/{menu['menu_item_id']}", json={"card_price": "260.00"})
        assert update.status_code == 200
        assert update.json()["data"]["card_price"] == "260.00"

        url = f"/api/v1/menu-items/{menu['menu_item_id']}/pricing"
        card = client.get(url, params={"at": "2024-01-03T12:00:00", "tender": "card"})
        assert card.json()["data"]["effective_price"] == "260.00"
        cash = client.get(url, params={"at": "2024-01-03T12:00:00", "tender": "cash"})
        assert cash.json()["data"]["effective_price"] == "250.00"
        assert client.get(url, params={"tender": "cheque"}).status_code == 422


def test_availability_gate_blocks_weekday_orders() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        availability_resp = client.post(
            "/api/v1/availabilities",
            json={
                "name": "Weekend",
                "schedules": [
                    {"day_name": "Saturday", "start_time": "10:00", "end_time": "22:00"},
                    {"day_name": "Sunday", "start_time": "10:00", "end_time": "22:00"},
                ],
            },
        )
        assert availability_resp.status_code == 200
        availability = availability_resp.json()["data"]
        assert [row["time_range"] for row in availability["schedules"]] == ["10:00-22:00", "10:00-22:00"]

        client.put(
            f"/api/v1/menu-items/{menu['menu_item_id']}",
            json={"availability_code": availability["availability_code"]},
        )
        url = f"/api/v1/menu-items/{menu['menu_item_id']}/pricing"
        wednesday = client.get(url, params={"at": "2024-01-03T12:00:00"}).json()["data"]
        assert wednesday["is_orderable"] is False
        assert wednesday["reason"] == "unavailable"
        assert wednesday["effective_price"] == "250.00"

        saturday = client.get(url, params={"at": "2024-01-06T12:00:00"}).json()["data"]
        assert saturday["is_orderable"] is True

        replace = client.put(
            f"/api/v1/availabilities/{availability['availability_id']}/schedules",
            json={"schedules": [{"day_name": "AllDays"}]},
        )
        assert replace.status_code == 200
        assert replace.json()["data"]["schedules"][0]["time_range"] == "All Times"
        assert client.get(url, params={"at": "2024-01-03T12:00:00"}).json()["data"]["is_orderable"] is True


def test_availability_in_use_cannot_be_deleted() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        availability = client.post("/api/v1/availabilities", json={"name": "Lunch"}).json()["data"]
        client.put(
            f"/api/v1/menu-categories/{menu['menu_category_id']}",
            json={"availability_code": availability["availability_code"]},
        )
        resp = client.delete(f"/api/v1/availabilities/{availability['availability_id']}")
        assert resp.status_code == 409


def test_invalid_time_events_are_rejected() -> None:
    client = _make_client()
    with client:
        bad_payloads = [
            {"event_name": "Both", "amount_add": "5", "percent_discount": "10"},
            {"event_name": "Extra", "amount_add": "5", "colour": "red"},
            {"event_name": "Overnight", "windows": [{"day_of_week": 4, "start_time": "22:00", "end_time": "02:00"}]},
            {"event_name": "Short", "windows": [{"day_of_week": 0, "start_time": "9:00", "end_time": "11:00"}]},
            {"event_name": "Sunday+1", "windows": [{"day_of_week": 7, "start_time": "09:00", "end_time": "11:00"}]},
            {
                "event_name": "Twice",
                "windows": [
                    {"day_of_week": 1, "start_time": "09:00", "end_time": "11:00"},
                    {"day_of_week": 1, "start_time": "12:00", "end_time": "13:00"},
                ],
            },
            {"event_name": "Backwards", "event_start_date": "2024-02-01", "event_end_date": "2024-01-01"},
            {"event_name": "Negative", "amount_discount": "-1"},
        ]
        for payload in bad_payloads:
            resp = client.post("/api/v1/time-events", json=payload)
            assert resp.status_code == 422, payload
        assert client.get("/api/v1/time-events").json()["data"] == []


def test_time_event_update_replaces_windows() -> None:
    client = _make_client()
    with client:
        created = client.post(
            "/api/v1/time-events",
            json={"event_name": "Lunch Deal", "amount_discount": "0", "amount_add": "2.50", "windows": WEEKDAYS_15_TO_18},
        )
        assert created.status_code == 200
        event = created.json()["data"]
        # zero adjustments count as unset
        assert event["amount_discount"] is None
        assert event["amount_add"] == "2.50"
        assert len(event["windows"]) == 5

        updated = client.put(
            f"/api/v1/time-events/{event['time_event_id']}",
            json={
                "event_name": "Lunch Deal",
                "percent_add": "5",
                "is_active": False,
                "windows": [{"day_of_week": 6, "start_time": "11:00", "end_time": "14:00"}],
            },
        )
        assert updated.status_code == 200
        data = updated.json()["data"]
        assert data["amount_add"] is None
        assert data["percent_add"] == "5"
        assert data["windows"] == [{"day_of_week": 6, "day_name": "Sunday", "start_time": "11:00", "end_time": "14:00"}]

        listed = client.get("/api/v1/time-events", params={"is_active": False}).json()["data"]
        assert [row["event_code"] for row in listed] == ["TE001"]

        assert client.delete(f"/api/v1/time-events/{event['time_event_id']}").status_code == 200
        assert client.get(f"/api/v1/time-events/{event['time_event_id']}").status_code == 404


def test_unknown_fields_and_missing_rows() -> None:
    client = _make_client()
    with client:
        resp = client.post("/api/v1/menu-masters", json={"name": "Bar", "mystery": 1})
        assert resp.status_code == 422

        missing = client.get("/api/v1/menu-items/999")
        assert missing.status_code == 404
        assert missing.json()["detail"] == "menu item not found"

        bad_category = client.post(
            "/api/v1/menu-items", json={"menu_category_id": 42, "name": "Ghost", "base_price": "1.00"}
        )
        assert bad_category.status_code == 404

        bad_tax = client.post("/api/v1/menu-masters", json={"name": "Bar", "tax_code": "T999"})
        assert bad_tax.status_code == 404


def test_taxes_paginate_by_cursor() -> None:
    client = _make_client()
    with client:
        for name in ("A", "B", "C"):
            assert client.post("/api/v1/taxes", json={"tax_name": name, "tax_rate": "1.5"}).status_code == 200

        first = client.get("/api/v1/taxes", params={"limit": 2}).json()
        assert [row["tax_code"] for row in first["data"]] == ["T001", "T002"]
        assert first["data"][0]["tax_rate"] == "1.5"
        cursor = first["meta"]["page"]["cursor"]
        assert cursor == str(first["data"][-1]["tax_id"])

        second = client.get("/api/v1/taxes", params={"limit": 2, "cursor": cursor}).json()
        assert [row["tax_code"] for row in second["data"]] == ["T003"]
        assert second["meta"]["request_id"].startswith("req_")


def test_partial_updates_keep_other_fields() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        resp = client.put(f"/api/v1/menu-items/{menu['menu_item_id']}", json={"is_out_of_stock": True})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["name"] == "Classic Burger"
        assert data["base_price"] == "250.00"

        pricing = client.get(
            f"/api/v1/menu-items/{menu['menu_item_id']}/pricing", params={"at": "2024-01-03T12:00:00"}
        ).json()["data"]
        assert pricing["reason"] == "out_of_stock"

        cleared = client.put(f"/api/v1/menu-items/{menu['menu_item_id']}", json={"name": None})
        assert cleared.status_code == 422


def test_modifier_group_inheritance() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        size = client.post("/api/v1/modifier-groups", json={"name": "Size", "min_select": 1, "max_select": 1}).json()["data"]
        sauce = client.post("/api/v1/modifier-groups", json={"name": "Sauce"}).json()["data"]
        option = client.post(
            "/api/v1/modifier-items", json={"modifier_group_id": size["modifier_group_id"], "name": "Large", "price": "1.5"}
        )
        assert option.status_code == 200
        assert option.json()["data"]["price"] == "1.50"

        assigned = client.put(
            f"/api/v1/menu-categories/{menu['menu_category_id']}/modifier-groups",
            json={"modifier_group_ids": [size["modifier_group_id"]]},
        )
        assert assigned.json()["data"]["modifier_group_ids"] == [size["modifier_group_id"]]
        client.put(
            f"/api/v1/menu-items/{menu['menu_item_id']}/modifier-groups",
            json={"modifier_group_ids": [sauce["modifier_group_id"]]},
        )

        url = f"/api/v1/menu-items/{menu['menu_item_id']}/pricing"
        inherited = client.get(url, params={"at": "2024-01-03T12:00:00"}).json()["data"]
        assert inherited["modifier_group_codes"] == sorted([size["modifier_group_code"], sauce["modifier_group_code"]])

        client.put(f"/api/v1/menu-items/{menu['menu_item_id']}", json={"inherit_modifier_group": False})
        explicit = client.get(url, params={"at": "2024-01-03T12:00:00"}).json()["data"]
        assert explicit["modifier_group_codes"] == [sauce["modifier_group_code"]]

        in_use = client.delete(f"/api/v1/modifier-groups/{size['modifier_group_id']}")
        assert in_use.status_code == 409

        bad_bounds = client.post("/api/v1/modifier-groups", json={"name": "Odd", "min_select": 3, "max_select": 1})
        assert bad_bounds.status_code == 422


def test_owned_rows_block_delete() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        assert client.delete(f"/api/v1/menu-categories/{menu['menu_category_id']}").status_code == 409
        assert client.delete(f"/api/v1/menu-masters/{menu['menu_master_id']}").status_code == 409

        assert client.delete(f"/api/v1/menu-items/{menu['menu_item_id']}").status_code == 200
        assert client.delete(f"/api/v1/menu-categories/{menu['menu_category_id']}").status_code == 200
        assert client.delete(f"/api/v1/menu-masters/{menu['menu_master_id']}").status_code == 200

        tax_list = client.get("/api/v1/taxes").json()["data"]
        assert client.delete(f"/api/v1/taxes/{tax_list[0]['tax_id']}").status_code == 200


def test_resolved_menu_lists_every_category() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        _link_happy_hour(client, menu["menu_master_id"])
        client.post(
            "/api/v1/menu-items",
            json={"menu_category_id": menu["menu_category_id"], "name": "Fries", "base_price": "40.00", "is_active": False},
        )
        client.post("/api/v1/menu-categories", json={"menu_master_id": menu["menu_master_id"], "name": "Empty"})

        resp = client.get(
            f"/api/v1/menu-masters/{menu['menu_master_id']}/menu", params={"at": "2024-01-03T16:00:00"}
        )
        assert resp.status_code == 200
        categories = resp.json()["data"]["categories"]
        assert [category["name"] for category in categories] == ["Mains", "Empty"]
        items = {item["name"]: item for item in categories[0]["items"]}
        assert items["Classic Burger"]["effective_price"] == "200.00"
        assert items["Fries"]["is_orderable"] is False
        assert categories[1]["items"] == []

        orderable = client.get(
            f"/api/v1/menu-masters/{menu['menu_master_id']}/menu",
            params={"at": "2024-01-03T16:00:00", "orderable_only": True},
        ).json()["data"]
        assert [item["name"] for item in orderable["categories"][0]["items"]] == ["Classic Burger"]

        events = client.get(f"/api/v1/menu-masters/{menu['menu_master_id']}/events").json()["data"]
        assert [event["event_code"] for event in events] == ["TE001"]


def test_kitchen_routing_rows() -> None:
    client = _make_client()
    with client:
        printer = client.post("/api/v1/printers", json={"printer_name": "Kitchen 1", "ip_address": "10.0.0.21"}).json()["data"]
        station = client.post("/api/v1/stations", json={"station_name": "Grill"}).json()["data"]
        zone_resp = client.post(
            "/api/v1/prep-zones",
            json={
                "prep_zone_name": "Hot Line",
                "station_code": station["station_code"],
                "printer_code": printer["printer_code"],
                "send_to_expediter": True,
            },
        )
        assert zone_resp.status_code == 200
        zone = zone_resp.json()["data"]
        assert zone["prep_zone_code"] == "W001"
        assert zone["always_print_ticket"] is False

        missing_printer = client.post(
            "/api/v1/prep-zones", json={"prep_zone_name": "Cold Line", "backup_printer_code": "W404"}
        )
        assert missing_printer.status_code == 404

        master = client.post(
            "/api/v1/menu-masters", json={"name": "Bar", "prep_zone_code": zone["prep_zone_code"]}
        )
        assert master.status_code == 200
        assert master.json()["data"]["prep_zone_code"] == "W001"

        assert len(client.get("/api/v1/printers", params={"is_active": True}).json()["data"]) == 1
        assert client.get(f"/api/v1/stations/{station['station_id']}").json()["data"]["station_name"] == "Grill"


def test_availability_gate_wins_over_happy_hour() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        _link_happy_hour(client, menu["menu_master_id"])
        weekend = client.post(
            "/api/v1/availabilities",
            json={
                "name": "Weekend",
                "schedules": [
                    {"day_name": "Saturday", "start_time": "10:00", "end_time": "22:00"},
                    {"day_name": "Sunday", "start_time": "10:00", "end_time": "22:00"},
                ],
            },
        ).json()["data"]
        client.put(
            f"/api/v1/menu-items/{menu['menu_item_id']}",
            json={"availability_code": weekend["availability_code"]},
        )

        data = client.get(
            f"/api/v1/menu-items/{menu['menu_item_id']}/pricing", params={"at": "2024-01-03T16:00:00"}
        ).json()["data"]
        assert data["is_orderable"] is False
        assert data["reason"] == "unavailable"
        assert data["applied_event_code"] is None
        assert data["effective_price"] == "250.00"


def test_midnight_end_time_round_trips() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        event = client.post(
            "/api/v1/time-events",
            json={
                "event_name": "Late Night",
                "amount_add": "10",
                "windows": [{"day_of_week": 2, "start_time": "18:00", "end_time": "24:00"}],
            },
        )
        assert event.status_code == 200
        event_data = event.json()["data"]
        assert event_data["windows"][0]["end_time"] == "24:00"
        client.put(
            f"/api/v1/menu-masters/{menu['menu_master_id']}/events",
            json={"time_event_ids": [event_data["time_event_id"]]},
        )

        late = client.get(
            f"/api/v1/menu-items/{menu['menu_item_id']}/pricing", params={"at": "2024-01-03T23:59:30"}
        ).json()["data"]
        assert late["effective_price"] == "260.00"
        assert late["applied_event_code"] == event_data["event_code"]

        availability = client.post(
            "/api/v1/availabilities",
            json={"name": "Evening", "schedules": [{"day_name": "AllDays", "start_time": "18:00", "end_time": "24:00"}]},
        )
        assert availability.status_code == 200
        schedule = availability.json()["data"]["schedules"][0]
        assert schedule["end_time"] == "24:00"
        assert schedule["time_range"] == "18:00-24:00"

        starts_at_midnight = client.post(
            "/api/v1/time-events",
            json={"event_name": "Bad", "windows": [{"day_of_week": 2, "start_time": "24:00", "end_time": "24:00"}]},
        )
        assert starts_at_midnight.status_code == 422


def test_duplicate_codes_return_conflict(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        _link_happy_hour(client, menu["menu_master_id"])
        assert client.post("/api/v1/availabilities", json={"name": "Lunch"}).json()["data"]["availability_code"] == "W001"

        monkeypatch.setattr("posadmin.main.next_code", lambda db, column, prefix: f"{prefix}001")
        availability = client.post("/api/v1/availabilities", json={"name": "Dinner"})
        assert availability.status_code == 409
        assert availability.json()["detail"] == "availability conflicts with existing data"

        event = client.post("/api/v1/time-events", json={"event_name": "Second", "amount_add": "1"})
        assert event.status_code == 409
        assert event.json()["detail"] == "time event conflicts with existing data"

        item = client.post(
            "/api/v1/menu-items",
            json={"menu_category_id": menu["menu_category_id"], "name": "Fries", "base_price": "40.00"},
        )
        assert item.status_code == 409

        monkeypatch.undo()
        assert client.post("/api/v1/availabilities", json={"name": "Dinner"}).json()["data"]["availability_code"] == "W002"
        assert len(client.get("/api/v1/time-events").json()["data"]) == 1


def test_kitchen_routing_updates() -> None:
    client = _make_client()
    with client:
        printer = client.post("/api/v1/printers", json={"printer_name": "Kitchen 1"}).json()["data"]
        backup = client.post("/api/v1/printers", json={"printer_name": "Kitchen 2"}).json()["data"]
        station = client.post("/api/v1/stations", json={"station_name": "Grill"}).json()["data"]
        zone = client.post(
            "/api/v1/prep-zones", json={"prep_zone_name": "Hot Line", "printer_code": printer["printer_code"]}
        ).json()["data"]

        renamed = client.put(
            f"/api/v1/printers/{printer['printer_id']}", json={"ip_address": "10.0.0.30", "is_active": False}
        )
        assert renamed.status_code == 200
        assert renamed.json()["data"]["printer_name"] == "Kitchen 1"
        assert renamed.json()["data"]["ip_address"] == "10.0.0.30"
        assert client.put(f"/api/v1/printers/{printer['printer_id']}", json={"printer_name": None}).status_code == 422
        assert client.put("/api/v1/printers/999", json={"is_active": True}).status_code == 404

        station_resp = client.put(f"/api/v1/stations/{station['station_id']}", json={"station_name": "Fryer"})
        assert station_resp.json()["data"]["station_name"] == "Fryer"
        assert client.put(f"/api/v1/stations/{station['station_id']}", json={"is_active": None}).status_code == 422

        zone_url = f"/api/v1/prep-zones/{zone['prep_zone_id']}"
        assert client.put(zone_url, json={"station_code": "W404"}).status_code == 404
        moved = client.put(
            zone_url,
            json={
                "station_code": station["station_code"],
                "backup_printer_code": backup["printer_code"],
                "always_print_ticket": True,
            },
        )
        assert moved.status_code == 200
        moved_data = moved.json()["data"]
        assert moved_data["prep_zone_name"] == "Hot Line"
        assert moved_data["printer_code"] == printer["printer_code"]
        assert moved_data["backup_printer_code"] == backup["printer_code"]
        assert moved_data["always_print_ticket"] is True


def test_assigned_kitchen_rows_block_delete() -> None:
    client = _make_client()
    with client:
        printer = client.post("/api/v1/printers", json={"printer_name": "Kitchen 1"}).json()["data"]
        backup = client.post("/api/v1/printers", json={"printer_name": "Kitchen 2"}).json()["data"]
        station = client.post("/api/v1/stations", json={"station_name": "Grill"}).json()["data"]
        zone = client.post(
            "/api/v1/prep-zones",
            json={
                "prep_zone_name": "Hot Line",
                "station_code": station["station_code"],
                "printer_code": printer["printer_code"],
                "backup_printer_code": backup["printer_code"],
            },
        ).json()["data"]
        master = client.post("/api/v1/menu-masters", json={"name": "Bar", "prep_zone_code": zone["prep_zone_code"]}).json()["data"]

        for url, detail in (
            (f"/api/v1/printers/{printer['printer_id']}", "printer is still assigned"),
            (f"/api/v1/printers/{backup['printer_id']}", "printer is still assigned"),
            (f"/api/v1/stations/{station['station_id']}", "station is still assigned"),
            (f"/api/v1/prep-zones/{zone['prep_zone_id']}", "prep zone is still assigned"),
        ):
            resp = client.delete(url)
            assert resp.status_code == 409, url
            assert resp.json()["detail"] == detail

        assert client.delete(f"/api/v1/menu-masters/{master['menu_master_id']}").status_code == 200
        assert client.delete(f"/api/v1/prep-zones/{zone['prep_zone_id']}").status_code == 200
        assert client.delete(f"/api/v1/printers/{printer['printer_id']}").status_code == 200
        assert client.delete(f"/api/v1/printers/{backup['printer_id']}").status_code == 200
        assert client.delete(f"/api/v1/stations/{station['station_id']}").status_code == 200


def test_station_groups_crud() -> None:
    client = _make_client()
    with client:
        created = client.post("/api/v1/station-groups", json={"group_name": "Hot Side"})
        assert created.status_code == 200
        group = created.json()["data"]
        assert group["is_active"] is True

        duplicate = client.post("/api/v1/station-groups", json={"group_name": "Hot Side"})
        assert duplicate.status_code == 409

        url = f"/api/v1/station-groups/{group['station_group_id']}"
        updated = client.put(url, json={"is_active": False})
        assert updated.json()["data"]["group_name"] == "Hot Side"
        assert client.put(url, json={"group_name": None}).status_code == 422

        assert client.get("/api/v1/station-groups", params={"is_active": True}).json()["data"] == []
        assert client.get(url).json()["data"]["is_active"] is False
        assert client.delete(url).status_code == 200
        assert client.get(url).status_code == 404


def test_availability_and_modifier_updates() -> None:
    client = _make_client()
    with client:
        availability = client.post(
            "/api/v1/availabilities",
            json={"name": "Lunch", "schedules": [{"day_name": "AllDays", "start_time": "11:00", "end_time": "14:00"}]},
        ).json()["data"]
        renamed = client.put(f"/api/v1/availabilities/{availability['availability_id']}", json={"name": "Late Lunch"})
        assert renamed.status_code == 200
        assert renamed.json()["data"]["name"] == "Late Lunch"
        assert renamed.json()["data"]["schedules"][0]["time_range"] == "11:00-14:00"
        assert client.put(f"/api/v1/availabilities/{availability['availability_id']}", json={"name": ""}).status_code == 422

        size = client.post("/api/v1/modifier-groups", json={"name": "Size", "min_select": 1, "max_select": 2}).json()["data"]
        group_url = f"/api/v1/modifier-groups/{size['modifier_group_id']}"
        widened = client.put(group_url, json={"max_select": 3, "is_required": True})
        assert widened.status_code == 200
        assert widened.json()["data"]["min_select"] == 1
        assert widened.json()["data"]["is_required"] is True

        too_narrow = client.put(group_url, json={"min_select": 4})
        assert too_narrow.status_code == 422
        assert client.get(group_url).json()["data"]["min_select"] == 1

        sauce = client.post("/api/v1/modifier-groups", json={"name": "Sauce"}).json()["data"]
        option = client.post(
            "/api/v1/modifier-items", json={"modifier_group_id": size["modifier_group_id"], "name": "Large", "price": "1.50"}
        ).json()["data"]
        item_url = f"/api/v1/modifier-items/{option['modifier_item_id']}"
        repriced = client.put(item_url, json={"price": "2", "modifier_group_id": sauce["modifier_group_id"]})
        assert repriced.status_code == 200
        assert repriced.json()["data"]["price"] == "2.00"
        assert repriced.json()["data"]["name"] == "Large"
        assert client.put(item_url, json={"modifier_group_id": 999}).status_code == 404
        assert client.put(item_url, json={"price": None}).status_code == 422


def test_order_quote_prices_lines() -> None:
    client = _make_client()
    with client:
        menu = _create_menu(client)
        _link_happy_hour(client, menu["menu_master_id"])
        sauce = client.post("/api/v1/modifier-groups", json={"name": "Sauce"}).json()["data"]
        size = client.post("/api/v1/modifier-groups", json={"name": "Size"}).json()["data"]
        cheese = client.post(
            "/api/v1/modifier-items", json={"modifier_group_id": sauce["modifier_group_id"], "name": "Cheese", "price": "1.50"}
        ).json()["data"]
        large = client.post(
            "/api/v1/modifier-items", json={"modifier_group_id": size["modifier_group_id"], "name": "Large", "price": "3"}
        ).json()["data"]
        client.put(
            f"/api/v1/menu-categories/{menu['menu_category_id']}/modifier-groups",
            json={"modifier_group_ids": [sauce["modifier_group_id"]]},
        )

        line = {"menu_item_id": menu["menu_item_id"], "quantity": 2, "modifier_item_ids": [cheese["modifier_item_id"]]}
        quote = client.post("/api/v1/orders/quote", json={"at": "2024-01-03T16:00:00", "lines": [line]})
        assert quote.status_code == 200
        data = quote.json()["data"]
        assert data["lines"][0]["applied_event_code"] == "TE001"
        assert data["lines"][0]["unit_price"] == "201.50"
        assert data["lines"][0]["subtotal"] == "403.00"
        assert data["lines"][0]["tax_code"] == menu["tax_code"]
        assert data["subtotal"] == "403.00"
        # 5% of 403.00
        assert data["tax"] == "20.15"
        assert data["total"] == "423.15"

        wrong_group = dict(line, modifier_item_ids=[large["modifier_item_id"]])
        assert client.post("/api/v1/orders/quote", json={"lines": [wrong_group]}).status_code == 422
        assert client.post("/api/v1/orders/quote", json={"lines": []}).status_code == 422
        missing = client.post("/api/v1/orders/quote", json={"lines": [{"menu_item_id": 999}]})
        assert missing.status_code == 404

        client.put(f"/api/v1/menu-items/{menu['menu_item_id']}", json={"is_out_of_stock": True})
        sold_out = client.post("/api/v1/orders/quote", json={"at": "2024-01-03T16:00:00", "lines": [line]})
        assert sold_out.status_code == 409
        assert "out_of_stock" in sold_out.json()["detail"]
