"""Stock level classification and reorder suggestions"""

import math
from decimal import Decimal
from procurement_gateway.domain.models import StockAssessment, StockItem, StockStatus


def classify_stock(item: StockItem) -> StockAssessment:
    """
    Classify remaining stock against what was delivered.

    - Purchased but nothing delivered yet: PENDING_DELIVERY (never low stock)
    - Delivered: percentage = remaining / delivered * 100
        0 -> DEPLETED, <20 -> LOW, <50 -> MODERATE, otherwise HEALTHY
    - Nothing purchased or delivered: NO_STOCK
    """
    purchased = Decimal(item.quantity_purchased or 0)
    delivered = Decimal(item.quantity_delivered or 0)
    remaining = Decimal(item.quantity_remaining or 0)

    if delivered == 0 and purchased > 0:
        return StockAssessment(StockStatus.PENDING_DELIVERY, None)

    if delivered > 0:
        percentage = remaining / delivered * 100
        if percentage <= 0:
            status = StockStatus.DEPLETED
        elif percentage < 20:
            status = StockStatus.LOW
        elif percentage < 50:
            status = StockStatus.MODERATE
        else:
            status = StockStatus.HEALTHY
        return StockAssessment(status, percentage)

    return StockAssessment(StockStatus.NO_STOCK, Decimal("0"))


def is_low_stock(item: StockItem) -> bool:
    return classify_stock(item).status == StockStatus.LOW


def suggest_reorder_quantity(item: StockItem) -> int:
    """
    Heuristic reorder quantity.

    Not yet delivered: reorder the full purchased quantity.
    Otherwise replenish against base = delivered (or purchased when nothing delivered):
        ceil(max(base * 0.5, base - remaining))
    """
    purchased = Decimal(item.quantity_purchased or 0)
    delivered = Decimal(item.quantity_delivered or 0)
    remaining = Decimal(item.quantity_remaining or 0)

    if delivered == 0 and purchased > 0:
        return math.ceil(purchased)

    base = delivered if delivered > 0 else purchased
    return math.ceil(max(base * Decimal("0.5"), base - remaining))
