"""ABC classification."""
from datetime import date, timedelta
from typing import List

import pytest

from wms_optimizer.core.exceptions import DegenerateInputError
from wms_optimizer.schemas.location_optimization import ABCClass, SkuConsumption
from wms_optimizer.services.abc_analysis_service import (
    ABCClassifier,
    ConsumptionValueProvider,
    MovementConsumptionProvider,
)


class StaticConsumption(ConsumptionValueProvider):
    def __init__(self, entries: List[SkuConsumption]):
        self.entries = entries

    async def get_consumption(self, warehouse_id, period_start, period_end):
        return list(self.entries)


def consumption(**revenues):
    return [
        SkuConsumption(sku=sku, revenue=revenue, quantity=int(revenue), pick_frequency=1)
        for sku, revenue in revenues.items()
    ]


TODAY = date.today()
LAST_MONTH = TODAY - timedelta(days=30)


class TestClassification:

    async def test_cumulative_revenue_classes(self, warehouse):
        """X alone carries 82% of revenue; the SKU reaching 96% cumulative is C."""
        classifier = ABCClassifier(StaticConsumption(consumption(Z=4.0, X=82.0, W=4.0, Y=10.0)))

        results = await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY)

        assert [(r.sku, r.classification) for r in results] == [
            ("X", ABCClass.A),
            ("Y", ABCClass.B),
            ("Z", ABCClass.C),
            ("W", ABCClass.C),
        ]
        assert [r.cumulative_percentage for r in results] == [82.0, 92.0, 96.0, 100.0]
        assert results[0].revenue_percentage == 82.0
        assert [r.recommended_zone for r in results] == ["A", "B", "C", "C"]

    async def test_thresholds_are_inclusive(self, warehouse):
        classifier = ABCClassifier(StaticConsumption(consumption(P=50.0, Q=30.0, R=15.0, S=5.0)))

        results = await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY)

        assert [r.classification for r in results] == [ABCClass.A, ABCClass.A, ABCClass.B, ABCClass.C]

    async def test_classes_are_monotonic(self, warehouse):
        revenues = {f"SKU-{n:02d}": float(n * n) for n in range(1, 21)}
        classifier = ABCClassifier(StaticConsumption(consumption(**revenues)))

        results = await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY)

        rank = {ABCClass.A: 0, ABCClass.B: 1, ABCClass.C: 2}
        ranks = [rank[r.classification] for r in results]
        assert ranks == sorted(ranks)
        assert {ABCClass.A, ABCClass.B, ABCClass.C} <= {r.classification for r in results}

    async def test_ties_keep_provider_order(self, warehouse):
        classifier = ABCClassifier(StaticConsumption(consumption(M=10.0, K=10.0, L=10.0)))

        results = await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY)

        assert [r.sku for r in results] == ["M", "K", "L"]

    async def test_zero_revenue_is_all_c(self, warehouse):
        classifier = ABCClassifier(StaticConsumption(consumption(M=0.0, K=0.0)))

        results = await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY)

        assert {r.classification for r in results} == {ABCClass.C}
        assert all(r.revenue_percentage == 0.0 and r.cumulative_percentage == 0.0 for r in results)

    async def test_empty_period(self, warehouse):
        classifier = ABCClassifier(StaticConsumption([]))
        assert await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY) == []

    async def test_period_must_not_end_before_start(self, warehouse):
        classifier = ABCClassifier(StaticConsumption([]))
        with pytest.raises(DegenerateInputError):
            await classifier.perform_abc_analysis(warehouse.id, TODAY, LAST_MONTH)


class TestMovementConsumption:

    async def test_revenue_from_pick_movements(self, db, seed, warehouse):
        fast = await seed.product("FAST", unit_price="10.00")
        slow = await seed.product("SLOW", unit_price="5.00")
        idle = await seed.product("IDLE", unit_price="99.00")
        bulk = await seed.location(warehouse, "C-01-01", capacity=500, current_quantity=60)
        face = await seed.location(warehouse, "A-01-01", capacity=100, current_quantity=20)
        await seed.stock(bulk, fast, 40)
        await seed.stock(face, fast, 10)
        await seed.stock(face, slow, 10)
        await seed.stock(bulk, idle, 20)
        await seed.picks(warehouse, fast, quantity=10, count=10)
        await seed.picks(warehouse, slow, quantity=20)
        # Outside the period
        await seed.picks(warehouse, slow, quantity=1000, days_ago=90)

        classifier = ABCClassifier(MovementConsumptionProvider(db))
        results = await classifier.perform_abc_analysis(warehouse.id, LAST_MONTH, TODAY)
        by_sku = {r.sku: r for r in results}

        assert [r.sku for r in results] == ["FAST", "SLOW", "IDLE"]
        assert by_sku["FAST"].annual_revenue == 1000.0
        assert by_sku["FAST"].annual_quantity == 100
        assert by_sku["FAST"].pick_frequency == 10
        assert by_sku["FAST"].classification == ABCClass.A
        assert by_sku["FAST"].current_zone == "C"
        assert by_sku["FAST"].product_name == "Product FAST"
        assert by_sku["SLOW"].annual_revenue == 100.0
        assert by_sku["SLOW"].current_zone == "A"
        assert by_sku["IDLE"].annual_revenue == 0.0
        assert by_sku["IDLE"].classification == ABCClass.C
