"""
Readiness Aggregator

An order is ready once stock-sourced plus production-sourced kg reach 95%
of the requested quantity. Both cached totals on the Order row are always
recomputed from their detail tables, never incremented.

Stock side:       sum(OrderStockEntry.kg)
Production side:  sum(ProductionBobin.kg where status counts as ready)
                  + sum(CuttingEntry.cut_kg where is_order_piece)
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from filmflow.core.config import settings
from filmflow.core.exceptions import NotFoundError
from filmflow.models import (
    BobinStatus,
    CuttingEntry,
    Order,
    OrderStatus,
    OrderStockEntry,
    ProductionBobin,
    SourceType,
)
from filmflow.store import Store
from filmflow.utils.validation import round_kg

logger = logging.getLogger(__name__)

ORDER_READY_THRESHOLD_PERCENT = settings.ORDER_READY_THRESHOLD_PERCENT

STOCK_SIDE = "stock"
PRODUCTION_SIDE = "production"


@dataclass(frozen=True)
class ReadyMetrics:
    quantity: float
    stock_ready_kg: float
    production_ready_kg: float
    total_ready_kg: float
    ready_percent: float
    is_ready: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quantity": self.quantity,
            "stock_ready_kg": self.stock_ready_kg,
            "production_ready_kg": self.production_ready_kg,
            "total_ready_kg": self.total_ready_kg,
            "ready_percent": self.ready_percent,
            "is_ready": self.is_ready,
        }


def calculate_ready_metrics(
    quantity: Optional[float],
    stock_ready_kg: Optional[float],
    production_ready_kg: Optional[float],
) -> ReadyMetrics:
    quantity = float(quantity or 0)
    stock = float(stock_ready_kg or 0)
    production = float(production_ready_kg or 0)
    total = round_kg(stock + production)
    percent = (total / quantity) * 100 if quantity > 0 else 0.0
    return ReadyMetrics(
        quantity=quantity,
        stock_ready_kg=stock,
        production_ready_kg=production,
        total_ready_kg=total,
        ready_percent=round(percent, 2),
        is_ready=quantity > 0 and percent >= ORDER_READY_THRESHOLD_PERCENT,
    )


def derive_order_status(current_status: Optional[str], source_type: Optional[str], is_ready: bool) -> Optional[str]:
    """
    Lifecycle status implied by readiness. Pure; returns current_status
    when nothing changes, None when there is no status to derive from.
    """
    if not current_status:
        return None
    if current_status in OrderStatus.TERMINAL:
        return current_status
    if is_ready:
        return OrderStatus.READY
    if current_status == OrderStatus.READY:
        if source_type in SourceType.WITH_PRODUCTION:
            return OrderStatus.IN_PRODUCTION
        return OrderStatus.CONFIRMED
    return current_status


@dataclass
class ReadinessResult:
    order_id: int
    side: str
    total_kg: float
    status: Optional[str]
    previous_status: Optional[str]
    metrics: ReadyMetrics


class ReadinessAggregator:

    def __init__(self, store: Store):
        self.store = store

    async def _load_order(self, order_id: int) -> Order:
        order = await self.store.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)
        return order

    async def sum_stock_side(self, order_id: int) -> float:
        entries = await self.store.select(OrderStockEntry, filters={"order_id": order_id})
        return round_kg(sum(float(e.kg or 0) for e in entries))

    async def sum_production_side(self, order_id: int) -> float:
        bobins = await self.store.select(
            ProductionBobin,
            filters={"order_id": order_id, "status": list(BobinStatus.READY_COUNTING)},
        )
        pieces = await self.store.select(
            CuttingEntry,
            filters={"order_id": order_id, "is_order_piece": True},
        )
        total = sum(float(b.kg or 0) for b in bobins) + sum(float(c.cut_kg or 0) for c in pieces)
        return round_kg(total)

    async def _recompute(self, order_id: int, side: str) -> ReadinessResult:
        # Sibling total comes from the row read just now; only this side's
        # column (and status) is written back.
        order = await self._load_order(order_id)
        if side == STOCK_SIDE:
            total = await self.sum_stock_side(order_id)
            column = "stock_ready_kg"
            metrics = calculate_ready_metrics(order.quantity, total, order.production_ready_kg)
        else:
            total = await self.sum_production_side(order_id)
            column = "production_ready_kg"
            metrics = calculate_ready_metrics(order.quantity, order.stock_ready_kg, total)

        status = derive_order_status(order.status, order.source_type, metrics.is_ready)
        values: Dict[str, Any] = {column: total}
        if status and status != order.status:
            values["status"] = status

        updated = await self.store.update(Order, order_id, values)
        if updated is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)

        logger.info(
            "READINESS_METRIC: recomputed order_id=%s side=%s total_kg=%s ready_percent=%s status=%s->%s",
            order_id, side, total, metrics.ready_percent, order.status, status,
        )
        return ReadinessResult(
            order_id=order_id,
            side=side,
            total_kg=total,
            status=status,
            previous_status=order.status,
            metrics=metrics,
        )

    async def recompute_stock_readiness(self, order_id: int) -> ReadinessResult:
        return await self._recompute(order_id, STOCK_SIDE)

    async def recompute_production_readiness(self, order_id: int) -> ReadinessResult:
        return await self._recompute(order_id, PRODUCTION_SIDE)

    async def reconcile(self, order_id: int) -> ReadyMetrics:
        """Recompute both sides and the status in one order update."""
        order = await self._load_order(order_id)
        stock = await self.sum_stock_side(order_id)
        production = await self.sum_production_side(order_id)
        metrics = calculate_ready_metrics(order.quantity, stock, production)
        status = derive_order_status(order.status, order.source_type, metrics.is_ready)

        values: Dict[str, Any] = {"stock_ready_kg": stock, "production_ready_kg": production}
        if status and status != order.status:
            values["status"] = status
        updated = await self.store.update(Order, order_id, values)
        if updated is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)

        logger.info(
            "READINESS_METRIC: reconciled order_id=%s stock_kg=%s production_kg=%s status=%s->%s",
            order_id, stock, production, order.status, status,
        )
        return metrics
