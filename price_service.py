"""
Price lookup use case: fetch the candidate rates, then select the one that applies.
"""

import logging
from datetime import datetime
from typing import Optional

from business_logic import PriceSelectionService, price_selection_service
from models import PriceRate, SearchCriteria
from price_repository import CandidateFetcher, price_repository

logger = logging.getLogger("price_manager.service")


class PriceService:
    """Composes a candidate fetcher with the price selection rule"""

    def __init__(
        self,
        fetcher: CandidateFetcher,
        selector: PriceSelectionService = price_selection_service,
    ):
        self.fetcher = fetcher
        self.selector = selector

    def select_best_price(
        self, brand_id: int, product_id: int, query_time: datetime
    ) -> Optional[PriceRate]:
        """
        Return the rate that applies to the brand's product at ``query_time``,
        or None when no rate is valid then.

        Fetcher errors propagate to the caller unchanged.
        """
        criteria = SearchCriteria(brand_id=brand_id, product_id=product_id, query_time=query_time)
        candidates = self.fetcher.fetch_candidates(
            criteria.brand_id, criteria.product_id, criteria.query_time
        )
        best = self.selector.select_best_price(candidates)

        if best is None:
            logger.info(
                "No price for brand %s product %s at %s",
                criteria.brand_id, criteria.product_id, criteria.query_time
            )
        return best


# Global price service instance
price_service = PriceService(price_repository)
