import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from schoolops.core.enums import ErrorKind

from .api import SchoolApiClient
from .errors import ApiError

logger = logging.getLogger(__name__)


def is_catalog_ready(catalog: Optional[Mapping[str, Any]]) -> bool:
    """Non-empty, every entry carries month and amount, and no month/year appears twice."""
    if not catalog:
        return False
    fees = catalog.get("monthly_fees") or []
    if not fees:
        return False
    seen = set()
    for fee in fees:
        if not fee.get("month") or fee.get("amount") is None:
            return False
        key = (fee["month"], fee.get("year"))
        if key in seen:
            return False
        seen.add(key)
    return True


class FeeCatalogWatcher:
    """
    Waits for a student's fee catalog to become usable after a class change.

    Fetches once, then retries up to max_retries times with exponential backoff. A failed
    fetch counts as an attempt; only FORBIDDEN is raised straight away. When the
    catalog is still not ready it asks the server to generate fees; a CONFLICT from that call
    means another writer already generated them, so the catalog is fetched again.
    """

    def __init__(
        self,
        client: SchoolApiClient,
        *,
        initial_delay: float = 0.0,
        max_retries: int = 3,
        backoff: float = 0.5,
        backoff_factor: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.initial_delay = initial_delay
        self.max_retries = max_retries
        self.backoff = backoff
        self.backoff_factor = backoff_factor
        self._sleep = sleep

    async def wait_for_catalog(self, pan_number: str) -> Mapping[str, Any]:
        if self.initial_delay > 0:
            await self._sleep(self.initial_delay)

        delay = self.backoff
        for attempt in range(self.max_retries + 1):
            try:
                catalog = await self.client.get_fee_catalog(pan_number, fresh=True)
            except ApiError as e:
                if e.kind is ErrorKind.FORBIDDEN:
                    raise
                logger.warning("Fee catalog fetch for %s failed (%s): %s", pan_number, e.kind.value, e.message)
                catalog = None
            if is_catalog_ready(catalog):
                return catalog
            if attempt < self.max_retries:
                logger.info("Fee catalog for %s not ready, retry %d in %.2fs", pan_number, attempt + 1, delay)
                await self._sleep(delay)
                delay *= self.backoff_factor

        logger.warning("Fee catalog for %s still empty after %d retries, generating", pan_number, self.max_retries)
        try:
            return await self.client.generate_fees(pan_number)
        except ApiError as e:
            if e.kind is not ErrorKind.CONFLICT:
                raise
            logger.info("Fees for %s already generated elsewhere, reloading catalog", pan_number)
            return await self.client.get_fee_catalog(pan_number, fresh=True)
