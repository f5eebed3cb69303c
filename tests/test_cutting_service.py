"""
Tests for recording and reversing cuts.
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from filmflow.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from filmflow.models import (
    AuditLog,
    CuttingEntry,
    CuttingPlan,
    CuttingPlanStatus,
    MovementDirection,
    MovementReason,
    Order,
    ReferenceType,
    StockItem,
    StockMovement,
)
from filmflow.services.cutting_service import CuttingService
from filmflow.services.saga import Saga

from conftest import create_order, create_plan, create_stock_item


async def record(service, actor, plan, **overrides):
    values = dict(
        cutting_plan_id=plan.id,
        bobbin_label="BOB-1",
        cut_width=1000,
        cut_kg=50,
        cut_quantity=1,
        is_order_piece=True,
    )
    values.update(overrides)
    return await service.record_cutting_entry(actor, **values)


async def assert_untouched(store, seeded):
    """Nothing from a failed cut is left behind."""
    assert store.count(CuttingEntry) == 0
    assert store.count(StockMovement) == 0
    assert store.count(StockItem) == 1
    source = await store.get(StockItem, seeded.source.id)
    assert source.kg == 200.0
    assert source.quantity == 4


class TestRecordCuttingEntry:

    @pytest.mark.asyncio
    async def test_happy_path_order_piece(self, store, seeded, production_user):
        result = await record(CuttingService(store), production_user, seeded.plan)

        assert result.warnings == []
        assert result.record["cut_kg"] == 50.0
        assert result.record["source_stock_id"] == seeded.source.id

        source = await store.get(StockItem, seeded.source.id)
        assert source.kg == 150.0

        movements = await store.select(StockMovement)
        assert len(movements) == 1
        assert movements[0].movement_type == MovementDirection.OUT
        assert movements[0].kg == 50.0
        assert movements[0].reason == MovementReason.CUTTING_SOURCE
        assert movements[0].reference_type == ReferenceType.CUTTING_ENTRY
        assert movements[0].reference_id == result.record["id"]

        order = await store.get(Order, seeded.order.id)
        assert order.production_ready_kg == 50.0

    @pytest.mark.asyncio
    async def test_first_cut_starts_the_plan(self, store, seeded, production_user):
        await record(CuttingService(store), production_user, seeded.plan)

        plan = await store.get(CuttingPlan, seeded.plan.id)
        assert plan.status == CuttingPlanStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_leftover_goes_back_to_stock(self, store, seeded, production_user):
        result = await record(
            CuttingService(store), production_user, seeded.plan,
            bobbin_label="LEFT-1", cut_width=300, cut_kg=10, is_order_piece=False,
        )

        leftover_id = result.record["leftover_stock_id"]
        leftover = await store.get(StockItem, leftover_id)
        assert leftover.kg == 10.0
        assert leftover.width == 300.0
        assert leftover.lot_no == "LEFT-1"
        assert leftover.product == seeded.source.product

        leftover_movements = await store.select(StockMovement, filters={"stock_item_id": leftover_id})
        assert len(leftover_movements) == 1
        assert leftover_movements[0].movement_type == MovementDirection.IN
        assert leftover_movements[0].kg == 10.0
        assert leftover_movements[0].reason == MovementReason.CUTTING_LEFTOVER
        assert leftover_movements[0].reference_id == result.record["id"]

        assert (await store.get(StockItem, seeded.source.id)).kg == 190.0
        assert (await store.get(Order, seeded.order.id)).production_ready_kg == 0.0

    @pytest.mark.asyncio
    async def test_plan_without_source_records_no_movement(self, store, production_user):
        order = await create_order(store)
        plan = await create_plan(store, order)

        result = await record(CuttingService(store), production_user, plan)

        assert result.record["source_stock_id"] is None
        assert store.count(StockMovement) == 0
        assert (await store.get(Order, order.id)).production_ready_kg == 50.0

    @pytest.mark.asyncio
    async def test_concurrent_cuts_do_not_oversell(self, store, production_user):
        order = await create_order(store)
        source = await create_stock_item(store, kg=30.0, quantity=1)
        plan = await create_plan(store, order, source)
        service = CuttingService(store)

        results = await asyncio.gather(
            record(service, production_user, plan, bobbin_label="A", cut_kg=20),
            record(service, production_user, plan, bobbin_label="B", cut_kg=20),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], (ConflictError, InsufficientStockError))

        assert (await store.get(StockItem, source.id)).kg == 10.0
        entries = await store.select(CuttingEntry)
        assert [e.bobbin_label for e in entries] == [successes[0].record["bobbin_label"]]
        assert store.count(StockMovement) == 1

    @pytest.mark.parametrize("field,value", [
        ("cut_kg", 0),
        ("cut_kg", -5),
        ("cut_kg", float("nan")),
        ("cut_kg", float("inf")),
        ("cut_kg", "heavy"),
        ("cut_width", 0),
        ("cut_quantity", 0),
        ("cut_quantity", 1.5),
        ("bobbin_label", "  "),
    ])
    @pytest.mark.asyncio
    async def test_invalid_input_rejected(self, store, seeded, production_user, field, value):
        with pytest.raises(ValidationError):
            await record(CuttingService(store), production_user, seeded.plan, **{field: value})

        await assert_untouched(store, seeded)

    @pytest.mark.asyncio
    async def test_unknown_plan(self, store, production_user):
        with pytest.raises(NotFoundError):
            await record(CuttingService(store), production_user, SimpleNamespace(id=99))

    @pytest.mark.asyncio
    async def test_cancelled_plan_rejected(self, store, seeded, production_user):
        await store.update(CuttingPlan, seeded.plan.id, {"status": CuttingPlanStatus.CANCELLED})

        with pytest.raises(ValidationError):
            await record(CuttingService(store), production_user, seeded.plan)

    @pytest.mark.asyncio
    async def test_role_without_permission(self, store, seeded, sales_user):
        with pytest.raises(PermissionDeniedError):
            await record(CuttingService(store), sales_user, seeded.plan)

        await assert_untouched(store, seeded)


class TestCuttingRollback:

    @pytest.mark.asyncio
    async def test_insufficient_stock_removes_entry(self, store, seeded, production_user):
        with pytest.raises(InsufficientStockError):
            await record(CuttingService(store), production_user, seeded.plan, cut_kg=500)

        await assert_untouched(store, seeded)

    @pytest.mark.asyncio
    async def test_entry_insert_failure(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("insert", CuttingEntry)

        with pytest.raises(InternalError):
            await record(CuttingService(faulty_store), production_user, seeded.plan)

        await assert_untouched(store, seeded)

    @pytest.mark.asyncio
    async def test_source_movement_failure(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("insert", StockMovement)

        with pytest.raises(InternalError) as exc_info:
            await record(CuttingService(faulty_store), production_user, seeded.plan)

        assert exc_info.value.details["rolled_back"] == ["restore source stock", "delete cutting entry"]
        await assert_untouched(store, seeded)

    @pytest.mark.asyncio
    async def test_leftover_item_failure(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("insert", StockItem)

        with pytest.raises(InternalError):
            await record(CuttingService(faulty_store), production_user, seeded.plan, is_order_piece=False, cut_kg=10)

        await assert_untouched(store, seeded)

    @pytest.mark.asyncio
    async def test_leftover_movement_failure(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("insert", StockMovement, skip=1)

        with pytest.raises(InternalError):
            await record(CuttingService(faulty_store), production_user, seeded.plan, is_order_piece=False, cut_kg=10)

        await assert_untouched(store, seeded)

    @pytest.mark.asyncio
    async def test_leftover_link_failure(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("update", CuttingEntry)

        with pytest.raises(InternalError) as exc_info:
            await record(CuttingService(faulty_store), production_user, seeded.plan, is_order_piece=False, cut_kg=10)

        assert exc_info.value.details["rollback_failures"] == []
        await assert_untouched(store, seeded)


class TestCuttingWarnings:

    @pytest.mark.asyncio
    async def test_readiness_failure_keeps_the_cut(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("update", Order)

        result = await record(CuttingService(faulty_store), production_user, seeded.plan)

        assert len(result.warnings) == 1
        assert "reconcile" in result.warnings[0]
        assert store.count(CuttingEntry) == 1
        assert (await store.get(StockItem, seeded.source.id)).kg == 150.0
        assert (await store.get(Order, seeded.order.id)).production_ready_kg == 0.0

    @pytest.mark.asyncio
    async def test_audit_failure_is_a_warning(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("insert", AuditLog)

        result = await record(CuttingService(faulty_store), production_user, seeded.plan)

        assert len(result.warnings) == 1
        assert "Audit" in result.warnings[0]
        assert store.count(CuttingEntry) == 1
        assert store.count(AuditLog) == 0

    @pytest.mark.asyncio
    async def test_plan_advance_failure_is_ignored(self, store, faulty_store, seeded, production_user):
        faulty_store.fail("update", CuttingPlan)

        result = await record(CuttingService(faulty_store), production_user, seeded.plan)

        assert result.warnings == []
        assert (await store.get(CuttingPlan, seeded.plan.id)).status == CuttingPlanStatus.PLANNED

    @pytest.mark.asyncio
    async def test_audit_entry_written(self, store, seeded, production_user):
        result = await record(CuttingService(store), production_user, seeded.plan)

        logs = await store.select(AuditLog)
        assert len(logs) == 1
        assert logs[0].action == "INSERT"
        assert logs[0].table_name == "cutting_entries"
        assert logs[0].record_id == result.record["id"]
        assert logs[0].user_id == production_user.user_id


class TestDeleteCuttingEntry:

    @pytest.mark.asyncio
    async def test_delete_order_piece_restores_everything(self, store, seeded, production_user, admin):
        service = CuttingService(store)
        result = await record(service, production_user, seeded.plan)

        deleted = await service.delete_cutting_entry(admin, result.record["id"])

        assert deleted.record == {"success": True, "id": result.record["id"]}
        assert store.count(CuttingEntry) == 0
        assert (await store.get(StockItem, seeded.source.id)).kg == 200.0
        assert (await store.get(Order, seeded.order.id)).production_ready_kg == 0.0

        reversal = await store.select(StockMovement, filters={"reason": MovementReason.CUTTING_REVERSAL})
        assert len(reversal) == 1
        assert reversal[0].movement_type == MovementDirection.IN
        assert reversal[0].kg == 50.0

    @pytest.mark.asyncio
    async def test_delete_untouched_leftover_removes_item(self, store, seeded, production_user, admin):
        service = CuttingService(store)
        result = await record(service, production_user, seeded.plan, is_order_piece=False, cut_kg=10)

        await service.delete_cutting_entry(admin, result.record["id"])

        assert await store.get(StockItem, result.record["leftover_stock_id"]) is None
        assert (await store.get(StockItem, seeded.source.id)).kg == 200.0

    @pytest.mark.asyncio
    async def test_delete_with_missing_source_warns_about_unrestored_kg(self, store, seeded, production_user, admin):
        service = CuttingService(store)
        result = await record(service, production_user, seeded.plan)
        await store.delete(StockItem, seeded.source.id)

        deleted = await service.delete_cutting_entry(admin, result.record["id"])

        assert deleted.record["success"] is True
        assert len(deleted.warnings) == 1
        assert str(seeded.source.id) in deleted.warnings[0]
        assert "50.0 kg" in deleted.warnings[0]
        assert store.count(CuttingEntry) == 0
        reversal = await store.select(StockMovement, filters={"reason": MovementReason.CUTTING_REVERSAL})
        assert reversal == []

    @pytest.mark.asyncio
    async def test_leftover_rollback_relinks_its_movements(self, store, seeded, production_user, admin):
        service = CuttingService(store)
        result = await record(service, production_user, seeded.plan, is_order_piece=False, cut_kg=10)
        leftover_id = result.record["leftover_stock_id"]
        entry = await store.get(CuttingEntry, result.record["id"])
        history = await store.select(StockMovement, filters={"stock_item_id": leftover_id})
        delete = store.delete

        async def delete_setting_null(model, record_id):
            # Mirrors the ON DELETE SET NULL foreign key on stock_movements
            if model is StockItem:
                for movement in await store.select(StockMovement, filters={"stock_item_id": record_id}):
                    await store.update(StockMovement, movement.id, {"stock_item_id": None})
            return await delete(model, record_id)

        with patch.object(store, "delete", new=delete_setting_null):
            with pytest.raises(InternalError):
                async with Saga("cutting_entry.delete") as saga:
                    await service._reverse_leftover(saga, admin, entry, 10.0)
                    assert await store.get(StockItem, leftover_id) is None
                    raise RuntimeError("readiness unavailable")

        assert (await store.get(StockItem, leftover_id)).kg == 10.0
        relinked = await store.select(StockMovement, filters={"stock_item_id": leftover_id})
        assert len(history) == 1
        assert [movement.id for movement in relinked] == [history[0].id]
        assert await store.select(StockMovement, filters={"stock_item_id": None}) == []

    @pytest.mark.asyncio
    async def test_delete_consumed_leftover_rolls_back(self, store, seeded, production_user, admin):
        service = CuttingService(store)
        result = await record(service, production_user, seeded.plan, is_order_piece=False, cut_kg=10)
        await store.update(StockItem, result.record["leftover_stock_id"], {"kg": 4.0})

        with pytest.raises(InsufficientStockError):
            await service.delete_cutting_entry(admin, result.record["id"])

        assert store.count(CuttingEntry) == 1
        assert (await store.get(StockItem, seeded.source.id)).kg == 190.0
        assert (await store.get(StockItem, result.record["leftover_stock_id"])).kg == 4.0

    @pytest.mark.asyncio
    async def test_readiness_failure_reinserts_entry(self, store, faulty_store, seeded, production_user, admin):
        result = await record(CuttingService(store), production_user, seeded.plan)
        faulty_store.fail("update", Order)

        with pytest.raises(InternalError):
            await CuttingService(faulty_store).delete_cutting_entry(admin, result.record["id"])

        restored = await store.get(CuttingEntry, result.record["id"])
        assert restored is not None
        assert (await store.get(StockItem, seeded.source.id)).kg == 150.0
        assert await store.select(StockMovement, filters={"reason": MovementReason.CUTTING_REVERSAL}) == []

    @pytest.mark.asyncio
    async def test_only_admin_may_delete(self, store, seeded, production_user):
        service = CuttingService(store)
        result = await record(service, production_user, seeded.plan)

        with pytest.raises(PermissionDeniedError):
            await service.delete_cutting_entry(production_user, result.record["id"])

    @pytest.mark.asyncio
    async def test_list_filters_by_plan(self, store, seeded, production_user):
        service = CuttingService(store)
        await record(service, production_user, seeded.plan, bobbin_label="A")
        await record(service, production_user, seeded.plan, bobbin_label="B")

        entries = await service.list_cutting_entries(plan_id=seeded.plan.id)
        assert {e.bobbin_label for e in entries} == {"A", "B"}
        assert await service.list_cutting_entries(plan_id=999) == []
