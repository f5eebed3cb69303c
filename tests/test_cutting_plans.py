"""
Tests for cutting plan creation and status transitions.
"""
import pytest

from filmflow.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from filmflow.models import CuttingPlan, CuttingPlanStatus, Order, OrderStatus
from filmflow.services.cutting_plan_service import CuttingPlanService

from conftest import create_order, create_plan, create_stock_item


class TestCreatePlan:

    @pytest.mark.asyncio
    async def test_copies_source_and_moves_order_to_production(self, store, production_user):
        order = await create_order(store)
        source = await create_stock_item(store, kg=300.0)

        result = await CuttingPlanService(store).create_plan(
            production_user, order_id=order.id, source_stock_id=source.id, target_kg=50, target_width=1000,
        )

        assert result.record["status"] == CuttingPlanStatus.PLANNED
        assert result.record["source_kg"] == 300.0
        assert result.record["source_product"] == source.product
        assert result.record["planned_by"] == production_user.user_id
        assert (await store.get(Order, order.id)).status == OrderStatus.IN_PRODUCTION

    @pytest.mark.asyncio
    async def test_ready_order_keeps_status(self, store, production_user):
        order = await create_order(store, status=OrderStatus.READY)

        await CuttingPlanService(store).create_plan(production_user, order_id=order.id, target_kg=10)

        assert (await store.get(Order, order.id)).status == OrderStatus.READY

    @pytest.mark.asyncio
    async def test_rejects_bad_targets_and_missing_refs(self, store, production_user):
        order = await create_order(store)
        service = CuttingPlanService(store)

        with pytest.raises(ValidationError):
            await service.create_plan(production_user, order_id=order.id, target_kg=-1)
        with pytest.raises(NotFoundError):
            await service.create_plan(production_user, order_id=order.id, source_stock_id=404)
        with pytest.raises(NotFoundError):
            await service.create_plan(production_user, order_id=404)
        assert store.count(CuttingPlan) == 0


class TestTransitionPlan:

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, store, production_user):
        plan = await create_plan(store, await create_order(store))
        service = CuttingPlanService(store)

        await service.transition_plan(production_user, plan.id, CuttingPlanStatus.IN_PROGRESS)
        result = await service.transition_plan(production_user, plan.id, CuttingPlanStatus.COMPLETED)

        assert result.record["status"] == CuttingPlanStatus.COMPLETED

    @pytest.mark.parametrize("start,target", [
        (CuttingPlanStatus.PLANNED, CuttingPlanStatus.COMPLETED),
        (CuttingPlanStatus.COMPLETED, CuttingPlanStatus.IN_PROGRESS),
        (CuttingPlanStatus.CANCELLED, CuttingPlanStatus.PLANNED),
        (CuttingPlanStatus.IN_PROGRESS, CuttingPlanStatus.PLANNED),
    ])
    @pytest.mark.asyncio
    async def test_illegal_transitions(self, store, production_user, start, target):
        plan = await create_plan(store, await create_order(store), status=start)

        with pytest.raises(ValidationError):
            await CuttingPlanService(store).transition_plan(production_user, plan.id, target)

    @pytest.mark.asyncio
    async def test_cancel_from_open_states(self, store, production_user):
        order = await create_order(store)
        service = CuttingPlanService(store)
        for start in (CuttingPlanStatus.PLANNED, CuttingPlanStatus.IN_PROGRESS):
            plan = await create_plan(store, order, status=start)
            result = await service.transition_plan(production_user, plan.id, CuttingPlanStatus.CANCELLED)
            assert result.record["status"] == CuttingPlanStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_lost_race_is_conflict(self, store, production_user):
        plan = await create_plan(store, await create_order(store))
        service = CuttingPlanService(store)
        original_update = store.update

        async def racing_update(model, record_id, values, expected=None, at_least=None):
            # Another operator cancels between the read and the write
            await original_update(CuttingPlan, plan.id, {"status": CuttingPlanStatus.CANCELLED})
            return await original_update(model, record_id, values, expected, at_least)

        store.update = racing_update
        with pytest.raises(ConflictError):
            await service.transition_plan(production_user, plan.id, CuttingPlanStatus.IN_PROGRESS)

    @pytest.mark.asyncio
    async def test_sales_may_not_transition(self, store, sales_user):
        plan = await create_plan(store, await create_order(store))
        with pytest.raises(PermissionDeniedError):
            await CuttingPlanService(store).transition_plan(sales_user, plan.id, CuttingPlanStatus.CANCELLED)
