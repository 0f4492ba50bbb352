# Overview: Pytest coverage for IMEI registration, allocation and release.

import pytest

from phonepos.models import SerialUnit
from phonepos.services.billing_service import BillingEngine, CartLine, Customer
from phonepos.services.imei_service import ImeiRegistry, normalize_serial
from phonepos.validation import (
    AlreadySoldError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)


class TestRegister:
    def test_register_creates_available_unit(self, db_session, phone):
        unit = ImeiRegistry().register(phone.id, "IMEI3")

        assert unit.id is not None
        assert unit.is_sold is False
        assert [u.serial for u in ImeiRegistry().list_available(phone.id)] == ["IMEI1", "IMEI2", "IMEI3"]
        assert phone.stock_quantity == 3

    def test_registered_unit_can_be_billed(self, db_session, inventory):
        item = inventory.create({
            "category": "phones", "name": "Pixel 8", "brand": "Google",
            "sku": "GGL-PX8", "price_cents": 69999,
        })
        assert item.status == "out_of_stock"

        ImeiRegistry().register(item.id, "IMEI9")
        assert item.stock_quantity == 1
        assert item.status == "active"

        sale = BillingEngine().checkout([CartLine(item.id, 1, 69999, "IMEI9")], Customer(name="Asha"))

        assert sale.total_cents == 69999
        assert item.stock_quantity == 0

    def test_duplicate_serial_for_same_item(self, db_session, phone):
        with pytest.raises(DuplicateError):
            ImeiRegistry().register(phone.id, "IMEI1")

    def test_same_serial_allowed_on_another_item(self, db_session, phone, inventory):
        other = inventory.create({
            "category": "phones", "name": "Galaxy S24 FE", "brand": "Samsung",
            "sku": "SAM-S24FE", "price_cents": 59999,
        })
        unit = ImeiRegistry().register(other.id, "IMEI1")

        assert unit.catalog_item_id == other.id
        assert len(ImeiRegistry().lookup("IMEI1")) == 2

    def test_non_phone_item_rejected(self, db_session, charger):
        with pytest.raises(ValidationError):
            ImeiRegistry().register(charger.id, "IMEI9")

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            ImeiRegistry().register(4040, "IMEI9")

    def test_serial_is_normalized(self, db_session, phone):
        unit = ImeiRegistry().register(phone.id, " 35 6789 1012 ")
        assert unit.serial == "3567891012"

    def test_blank_serial_rejected(self):
        with pytest.raises(ValidationError):
            normalize_serial("   ")
        with pytest.raises(ValidationError):
            normalize_serial(None)
        with pytest.raises(ValidationError):
            normalize_serial("9" * 33)


class TestAllocate:
    def test_allocate_excludes_unit_from_availability(self, db_session, phone):
        registry = ImeiRegistry()
        unit = registry.allocate(phone.id, "IMEI1")

        assert unit.is_sold is True
        assert [u.serial for u in registry.list_available(phone.id)] == ["IMEI2"]

    def test_second_allocation_fails(self, db_session, phone):
        registry = ImeiRegistry()
        registry.allocate(phone.id, "IMEI1")

        with pytest.raises(AlreadySoldError):
            registry.allocate(phone.id, "IMEI1")
        assert [u.serial for u in registry.list_available(phone.id)] == ["IMEI2"]

    def test_allocate_unknown_serial(self, db_session, phone):
        with pytest.raises(NotFoundError):
            ImeiRegistry().allocate(phone.id, "IMEI404")

    def test_stale_unit_loses_conditional_update(self, db_session, phone):
        """Row already flipped in the store while the caller still saw it unsold."""

        class StaleRegistry(ImeiRegistry):
            def find(self, catalog_item_id, serial):
                unit = super().find(catalog_item_id, serial)
                self.session.query(SerialUnit).filter(SerialUnit.id == unit.id).update(
                    {"is_sold": True}, synchronize_session=False
                )
                return unit

        with pytest.raises(AlreadySoldError):
            StaleRegistry().allocate(phone.id, "IMEI1")

    def test_list_units_includes_sold_history(self, db_session, phone):
        registry = ImeiRegistry()
        registry.allocate(phone.id, "IMEI2")

        assert [u.serial for u in registry.list_units(phone.id)] == ["IMEI1", "IMEI2"]
        assert [u.serial for u in registry.list_units(phone.id, include_sold=False)] == ["IMEI1"]


class TestRelease:
    def test_release_removes_unsold_unit(self, db_session, phone):
        registry = ImeiRegistry()
        unit_id = registry.find(phone.id, "IMEI2").id

        registry.release(unit_id)

        assert db_session.get(SerialUnit, unit_id) is None
        assert [u.serial for u in registry.list_available(phone.id)] == ["IMEI1"]
        assert phone.stock_quantity == 1

    def test_release_sold_unit_is_conflict(self, db_session, phone):
        registry = ImeiRegistry()
        unit = registry.allocate(phone.id, "IMEI1")

        with pytest.raises(ConflictError):
            registry.release(unit.id)
        assert db_session.get(SerialUnit, unit.id) is not None

    def test_release_missing_unit(self, db_session):
        with pytest.raises(NotFoundError):
            ImeiRegistry().release(777)
