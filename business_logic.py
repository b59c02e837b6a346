"""
Business logic for selecting the applicable price among candidate rates.
"""

import logging
from typing import Iterable, Optional

from models import PriceRate

logger = logging.getLogger("price_manager.selection")


class PriceSelectionService:
    """Service containing the price selection rule"""

    def select_best_price(self, prices: Optional[Iterable[PriceRate]]) -> Optional[PriceRate]:
        """
        Select the rate that applies among the candidates:
        1. Highest priority wins
        2. On equal priority, highest list id wins
        3. On a full tie, the first candidate encountered wins

        Empty or missing input yields None; that is a normal outcome, not an error.
        The input is not re-validated; candidates are assumed consistent.
        """
        if not prices:
            return None

        # max() keeps the first of several equal keys
        best = max(prices, key=PriceRate.selection_key, default=None)
        if best is not None:
            logger.debug(
                "Selected list %s (priority %s) for brand %s product %s",
                best.list_id, best.priority, best.brand_id, best.product_id
            )
        return best


# Global price selection service instance
price_selection_service = PriceSelectionService()
