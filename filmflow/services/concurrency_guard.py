"""
Concurrency Guard

Read-then-conditional-write around StockLedger.decrement_stock. This is
the only thing standing between two concurrent cuts and an oversold item.
It does not retry: a lost race surfaces as ConflictError (409) and the
operator re-issues the action.
"""
import logging

from filmflow.core.exceptions import InsufficientStockError
from filmflow.services.stock_ledger import StockChange, StockLedger

logger = logging.getLogger(__name__)


class ConcurrencyGuard:

    def __init__(self, ledger: StockLedger):
        self.ledger = ledger

    async def take(self, stock_item_id: int, kg: float) -> StockChange:
        """
        Remove kg from a stock item.

        Raises:
            NotFoundError: no such stock item
            InsufficientStockError: the snapshot already holds less than kg
            ConflictError: another writer changed the item after the snapshot
        """
        snapshot = await self.ledger.snapshot(stock_item_id)
        if snapshot.kg < kg:
            logger.info(
                "STOCK_METRIC: insufficient stock_item_id=%s requested_kg=%s available_kg=%s",
                stock_item_id, kg, snapshot.kg,
            )
            raise InsufficientStockError(
                f"Insufficient stock: {snapshot.kg} kg available, {kg} kg requested",
                stock_item_id=stock_item_id,
                requested_kg=kg,
                available_kg=snapshot.kg,
            )

        try:
            return await self.ledger.decrement_stock(snapshot, kg)
        except Exception:
            logger.warning(
                "STOCK_METRIC: decrement_rejected stock_item_id=%s requested_kg=%s snapshot_kg=%s",
                stock_item_id, kg, snapshot.kg,
            )
            raise
