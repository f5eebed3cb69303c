"""
Tests for order creation, readiness reads and reconciliation.
"""
import pytest

from filmflow.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from filmflow.models import AuditLog, Order, OrderStatus, OrderStockEntry, SourceType
from filmflow.services.order_service import OrderService, generate_order_number

from conftest import create_order


def test_order_number_format():
    number = generate_order_number()
    assert number.startswith("FF-")
    assert len(number) == 11
    assert number != generate_order_number()


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_create_starts_with_zero_readiness(self, store, sales_user):
        result = await OrderService(store).create_order(
            sales_user, customer="Acme", product_type="BOPP", quantity=500, source_type=SourceType.BOTH,
        )

        assert result.record["status"] == OrderStatus.CONFIRMED
        assert result.record["stock_ready_kg"] == 0.0
        assert result.record["production_ready_kg"] == 0.0
        assert result.record["created_by"] == sales_user.user_id
        assert store.count(AuditLog) == 1

    @pytest.mark.parametrize("overrides", [
        {"quantity": 0},
        {"customer": "  "},
        {"source_type": "import"},
        {"status": OrderStatus.READY},
    ])
    @pytest.mark.asyncio
    async def test_create_validation(self, store, sales_user, overrides):
        values = {"customer": "Acme", "product_type": "BOPP", "quantity": 10}
        values.update(overrides)

        with pytest.raises(ValidationError):
            await OrderService(store).create_order(sales_user, **values)
        assert store.count(Order) == 0

    @pytest.mark.asyncio
    async def test_warehouse_may_not_create(self, store, warehouse_user):
        with pytest.raises(PermissionDeniedError):
            await OrderService(store).create_order(warehouse_user, customer="Acme", product_type="BOPP", quantity=1)


class TestReadinessAndReconcile:

    @pytest.mark.asyncio
    async def test_readiness_reads_cached_totals(self, store, sales_user):
        order = await create_order(store, stock_ready_kg=40.0, production_ready_kg=15.5)

        readiness = await OrderService(store).get_readiness(sales_user, order.id)

        assert readiness["total_ready_kg"] == 55.5
        assert readiness["ready_percent"] == 55.5
        assert readiness["is_ready"] is False
        assert readiness["source_type"] == SourceType.PRODUCTION

    @pytest.mark.asyncio
    async def test_reconcile_repairs_drifted_cache(self, store, admin):
        order = await create_order(store, source_type=SourceType.STOCK, stock_ready_kg=5.0)
        await store.insert(OrderStockEntry, {"order_id": order.id, "bobbin_label": "S-1", "kg": 97.0})

        result = await OrderService(store).reconcile_order(admin, order.id)

        assert result["changed"] is True
        assert result["stock_ready_kg"] == 97.0
        assert result["is_ready"] is True
        assert result["status"] == OrderStatus.READY
        assert (await store.get(Order, order.id)).status == OrderStatus.READY

    @pytest.mark.asyncio
    async def test_reconcile_consistent_order_reports_unchanged(self, store, admin):
        order = await create_order(store)

        result = await OrderService(store).reconcile_order(admin, order.id)

        assert result["changed"] is False
        assert result["warnings"] == []

    @pytest.mark.asyncio
    async def test_reconcile_requires_permission_and_order(self, store, admin, production_user):
        order = await create_order(store)
        service = OrderService(store)

        with pytest.raises(PermissionDeniedError):
            await service.reconcile_order(production_user, order.id)
        with pytest.raises(NotFoundError):
            await service.reconcile_order(admin, 999)
