"""
ABC classification of SKUs by consumption value.

Revenue per SKU comes from a ConsumptionValueProvider. The production
provider aggregates PICK movements from the stock ledger; tests and other
callers can supply their own.
"""
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import DegenerateInputError
from wms_optimizer.models.inventory import InventoryRecord, StockMovement, StockMovementType
from wms_optimizer.models.product import Product
from wms_optimizer.models.wms import StorageLocation
from wms_optimizer.schemas.location_optimization import ABCAnalysisResult, ABCClass, SkuConsumption

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


class ConsumptionValueProvider(ABC):
    """Source of per-SKU quantity and revenue over a period."""

    @abstractmethod
    async def get_consumption(
        self, warehouse_id: UUID, period_start: date, period_end: date
    ) -> List[SkuConsumption]:
        ...


class MovementConsumptionProvider(ConsumptionValueProvider):
    """
    Consumption from PICK movements in the stock ledger.

    Revenue is quantity x unit price recorded on each movement. SKUs that
    are in stock but were never picked in the period are included with zero
    consumption so they can still be classified (as C).
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_consumption(
        self, warehouse_id: UUID, period_start: date, period_end: date
    ) -> List[SkuConsumption]:
        start = datetime.combine(period_start, time.min, tzinfo=timezone.utc)
        end = datetime.combine(period_end + timedelta(days=1), time.min, tzinfo=timezone.utc)

        picks = await self.db.execute(
            select(
                StockMovement.product_id,
                StockMovement.sku,
                func.sum(StockMovement.quantity).label("quantity"),
                func.sum(StockMovement.quantity * StockMovement.unit_price).label("revenue"),
                func.count(StockMovement.id).label("picks"),
            )
            .where(
                and_(
                    StockMovement.warehouse_id == warehouse_id,
                    StockMovement.movement_type == StockMovementType.PICK.value,
                    StockMovement.movement_date >= start,
                    StockMovement.movement_date < end,
                )
            )
            .group_by(StockMovement.product_id, StockMovement.sku)
        )

        consumption: Dict[str, SkuConsumption] = {}
        for row in picks.all():
            consumption[row.sku] = SkuConsumption(
                sku=row.sku,
                product_id=row.product_id,
                quantity=int(row.quantity or 0),
                revenue=float(row.revenue or 0),
                pick_frequency=int(row.picks or 0),
            )

        zones = await self._current_zones(warehouse_id)
        stocked = await self.db.execute(
            select(InventoryRecord.sku, InventoryRecord.product_id)
            .where(
                and_(
                    InventoryRecord.warehouse_id == warehouse_id,
                    InventoryRecord.quantity_on_hand > 0,
                )
            )
            .distinct()
        )
        for sku, product_id in stocked.all():
            if sku not in consumption:
                consumption[sku] = SkuConsumption(sku=sku, product_id=product_id)

        names = await self._product_names([c.product_id for c in consumption.values() if c.product_id])
        for entry in consumption.values():
            entry.current_zone = zones.get(entry.sku)
            entry.product_name = names.get(entry.product_id, "")

        # Deterministic input order for the stable sort downstream
        return sorted(consumption.values(), key=lambda c: c.sku)

    async def _current_zones(self, warehouse_id: UUID) -> Dict[str, str]:
        """Zone holding the most on-hand units of each SKU."""
        result = await self.db.execute(
            select(
                InventoryRecord.sku,
                StorageLocation.zone,
                func.sum(InventoryRecord.quantity_on_hand).label("on_hand"),
            )
            .join(StorageLocation, StorageLocation.id == InventoryRecord.location_id)
            .where(
                and_(
                    InventoryRecord.warehouse_id == warehouse_id,
                    InventoryRecord.quantity_on_hand > 0,
                )
            )
            .group_by(InventoryRecord.sku, StorageLocation.zone)
        )
        per_sku = defaultdict(list)
        for row in result.all():
            per_sku[row.sku].append((-int(row.on_hand), row.zone))
        return {sku: min(entries)[1] for sku, entries in per_sku.items()}

    async def _product_names(self, product_ids: Sequence[UUID]) -> Dict[UUID, str]:
        if not product_ids:
            return {}
        result = await self.db.execute(
            select(Product.id, Product.name).where(Product.id.in_(set(product_ids)))
        )
        return {row.id: row.name for row in result.all()}


class ABCClassifier:
    """Pareto classification of SKUs by cumulative revenue share."""

    def __init__(self, provider: ConsumptionValueProvider, config: Optional[OptimizerConfig] = None):
        self.provider = provider
        self.config = config or OptimizerConfig()

    async def perform_abc_analysis(
        self, warehouse_id: UUID, period_start: date, period_end: date
    ) -> List[ABCAnalysisResult]:
        if period_end < period_start:
            raise DegenerateInputError(
                "ABC analysis period ends before it starts",
                details={"period_start": period_start.isoformat(), "period_end": period_end.isoformat()},
            )

        logger.info(f"Performing ABC analysis for warehouse: {warehouse_id} ({period_start} - {period_end})")
        consumption = await self.provider.get_consumption(warehouse_id, period_start, period_end)
        results = self.classify(consumption)

        counts = defaultdict(int)
        for r in results:
            counts[r.classification.value] += 1
        logger.info(
            f"ABC analysis complete: {len(results)} SKUs "
            f"(A={counts['A']}, B={counts['B']}, C={counts['C']})"
        )
        return results

    def classify(self, consumption: Sequence[SkuConsumption]) -> List[ABCAnalysisResult]:
        """
        Sort by revenue (descending, stable) and assign A while cumulative
        share <= A threshold, B while <= B threshold, else C.

        The top-ranked SKU is always A: a single SKU carrying more than the
        A share on its own is still the most valuable item in the warehouse.
        A period without revenue yields all C with zero percentages.
        """
        ranked = sorted(consumption, key=lambda c: c.revenue, reverse=True)
        total_revenue = sum(c.revenue for c in ranked)
        total_quantity = sum(c.quantity for c in ranked)

        if total_revenue <= 0 and ranked:
            logger.warning(f"No revenue in period for {len(ranked)} SKUs; classifying all as C")

        results = []
        cumulative = 0.0
        for rank, entry in enumerate(ranked):
            quantity_pct = entry.quantity / total_quantity * 100 if total_quantity > 0 else 0.0

            if total_revenue > 0:
                cumulative += entry.revenue
                share = cumulative / total_revenue
                revenue_pct = entry.revenue / total_revenue * 100
                if (rank == 0 and entry.revenue > 0) or share <= self.config.abc_a_threshold + _EPSILON:
                    classification = ABCClass.A
                elif share <= self.config.abc_b_threshold + _EPSILON:
                    classification = ABCClass.B
                else:
                    classification = ABCClass.C
                cumulative_pct = share * 100
            else:
                classification = ABCClass.C
                revenue_pct = 0.0
                cumulative_pct = 0.0

            results.append(
                ABCAnalysisResult(
                    sku=entry.sku,
                    product_id=entry.product_id,
                    product_name=entry.product_name,
                    classification=classification,
                    annual_revenue=round(entry.revenue, 2),
                    annual_quantity=entry.quantity,
                    pick_frequency=entry.pick_frequency,
                    revenue_percentage=round(revenue_pct, 2),
                    quantity_percentage=round(quantity_pct, 2),
                    cumulative_percentage=round(cumulative_pct, 2),
                    current_zone=entry.current_zone,
                    recommended_zone=classification.value,
                )
            )

        return results
