"""Tests de inventario: derivación de estado y operaciones de stock."""

import pytest

from toollife_api.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from toollife_api.stock.service import ToolStockService
from toollife_api.stock.status import StockStatus, derive_stock_status, needs_reordering


@pytest.fixture
def stock_service(db) -> ToolStockService:
    return ToolStockService(db)


def _new(stock_service, name="Drill 8mm", current=30, **extra):
    data = {"tool_name": name, "current_stock": current}
    data.update(extra)
    return stock_service.create(data, updated_by="storekeeper")


class TestDeriveStockStatus:
    @pytest.mark.parametrize(
        "current, expected",
        [
            (0, StockStatus.OUT_OF_STOCK),
            (1, StockStatus.CRITICAL),
            (5, StockStatus.CRITICAL),
            (6, StockStatus.LOW_STOCK),
            (10, StockStatus.LOW_STOCK),
            (11, StockStatus.IN_STOCK),
        ],
    )
    def test_boundaries(self, current, expected):
        assert derive_stock_status(current, 5, 10) is expected

    def test_needs_reordering(self):
        assert needs_reordering(10, 10)
        assert not needs_reordering(11, 10)


class TestCreate:
    def test_defaults(self, stock_service):
        stock = _new(stock_service, current=30)

        assert stock.id is not None
        assert stock.minimum_stock == 5
        assert stock.maximum_stock == 50
        assert stock.reorder_level == 10
        assert stock.reorder_quantity == 20
        assert stock.unit == "pieces"
        assert stock.location == "Tool Room"
        assert stock.status is StockStatus.IN_STOCK
        assert stock.last_updated_by_name == "storekeeper"
        assert stock.last_restock_date is not None

    def test_status_derived_on_create(self, stock_service):
        assert _new(stock_service, current=0).status is StockStatus.OUT_OF_STOCK

    def test_requires_name_and_current_stock(self, stock_service):
        with pytest.raises(ValidationError):
            stock_service.create({"tool_name": "  ", "current_stock": 1})
        with pytest.raises(ValidationError):
            stock_service.create({"tool_name": "Tap M6"})

    def test_duplicate_name_and_pocket(self, stock_service):
        _new(stock_service, atc_pocket_no="P1")
        with pytest.raises(ConflictError):
            _new(stock_service, atc_pocket_no="P1")
        # Mismo nombre en otro pocket es otro registro.
        assert _new(stock_service, atc_pocket_no="P2").id is not None


class TestQuantities:
    def test_add_stock_updates_status_and_restock_date(self, stock_service):
        stock = _new(stock_service, current=3)
        assert stock.status is StockStatus.CRITICAL

        updated = stock_service.add_stock(stock.id, 5, updated_by="ana")
        assert updated.current_stock == 8
        assert updated.status is StockStatus.LOW_STOCK
        assert updated.last_updated_by_name == "ana"
        assert updated.last_restock_date is not None

    def test_remove_stock_to_zero(self, stock_service):
        stock = _new(stock_service, current=12)
        updated = stock_service.remove_stock(stock.id, 12)
        assert updated.current_stock == 0
        assert updated.status is StockStatus.OUT_OF_STOCK

    def test_insufficient_stock_writes_nothing(self, stock_service):
        stock = _new(stock_service, current=4)

        with pytest.raises(InsufficientStockError) as exc:
            stock_service.remove_stock(stock.id, 5)

        assert exc.value.message == "Insufficient stock. Current: 4, Requested: 5"
        assert stock_service.get(stock.id).current_stock == 4

    @pytest.mark.parametrize("quantity", [0, -3, None, 2.5, True])
    def test_quantity_must_be_positive_integer(self, stock_service, quantity):
        stock = _new(stock_service)
        with pytest.raises(ValidationError):
            stock_service.add_stock(stock.id, quantity)

    def test_unknown_stock(self, stock_service):
        with pytest.raises(NotFoundError):
            stock_service.add_stock(999, 1)
        with pytest.raises(NotFoundError):
            stock_service.remove_stock(999, 1)


class TestUpdateDelete:
    def test_partial_update_recomputes_status(self, stock_service):
        stock = _new(stock_service, current=30)
        updated = stock_service.update(stock.id, {"reorder_level": 40, "location": " Crib B "})

        assert updated.status is StockStatus.LOW_STOCK
        assert updated.needs_reordering is True
        assert updated.location == "Crib B"
        assert updated.current_stock == 30

    def test_update_rejects_blank_name(self, stock_service):
        stock = _new(stock_service)
        with pytest.raises(ValidationError):
            stock_service.update(stock.id, {"tool_name": "   "})

    def test_delete(self, stock_service):
        stock = _new(stock_service)
        deleted = stock_service.delete(stock.id)
        assert deleted.id == stock.id
        with pytest.raises(NotFoundError):
            stock_service.get(stock.id)


class TestListingAndReports:
    def test_pagination_and_search(self, stock_service):
        for i in range(5):
            _new(stock_service, name=f"Drill {i}", tool_room_no="R1")
        _new(stock_service, name="End mill", location="Crib B")

        page = stock_service.list(page=2, limit=2)
        assert page.total == 6
        assert page.total_pages == 3
        assert [s.tool_name for s in page.items] == ["Drill 2", "Drill 3"]

        found = stock_service.list(search="crib")
        assert [s.tool_name for s in found.items] == ["End mill"]

    def test_limits_are_clamped(self, stock_service):
        page = stock_service.list(page=0, limit=1000)
        assert page.page == 1
        assert page.limit == 100

    def test_low_stock_ordered_by_status_then_quantity(self, stock_service):
        _new(stock_service, name="A", current=8)
        _new(stock_service, name="B", current=0)
        _new(stock_service, name="C", current=3)
        _new(stock_service, name="D", current=2)
        _new(stock_service, name="E", current=40)

        names = [s.tool_name for s in stock_service.low_stock()]
        # critical < low_stock < out_of_stock (orden alfabético del estado)
        assert names == ["D", "C", "A", "B"]

    def test_statistics(self, stock_service):
        _new(stock_service, name="A", current=8, cost_per_unit=2.5)
        _new(stock_service, name="B", current=0)
        _new(stock_service, name="C", current=3, cost_per_unit=10)

        stats = stock_service.statistics()
        assert stats == {
            "total_items": 3,
            "total_stock": 11,
            "total_value": 50.0,
            "low_stock_count": 1,
            "critical_count": 1,
            "out_of_stock_count": 1,
        }

    def test_statistics_empty(self, stock_service):
        assert stock_service.statistics()["total_items"] == 0

    def test_batch_reports_per_item(self, stock_service):
        _new(stock_service, name="Existing")
        result = stock_service.batch_create(
            [
                {"tool_name": "New 1", "current_stock": 3},
                {"tool_name": "", "current_stock": 3},
                {"tool_name": "Existing", "current_stock": 1},
            ]
        )

        assert result.success == 1
        assert result.failed == 2
        assert result.errors == [
            {"index": 1, "error": "tool_name: Tool name is required"},
            {"index": 2, "error": "Tool stock already exists for this tool"},
        ]

    def test_batch_requires_items(self, stock_service):
        with pytest.raises(ValidationError):
            stock_service.batch_create([])
