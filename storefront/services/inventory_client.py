# storefront/services/inventory_client.py
import time
from typing import Callable, Iterator, List

import requests
from pydantic import ValidationError
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from storefront.domain.errors import ConfigurationError, UpstreamError
from storefront.domain.schemas import RawItem
from storefront.utils.logging import get_logger
from storefront.utils.retry import RETRYABLE_STATUSES, RetryableStatusError, parse_retry_after, wait_retry_after
from storefront.utils import settings

logger = get_logger(__name__)


def parse_items_page(data) -> List[dict]:
    """Znane ksztalty odpowiedzi: {"elements": [...]} albo gola lista. Inne -> []."""
    if isinstance(data, dict) and isinstance(data.get("elements"), list):
        return [e for e in data["elements"] if isinstance(e, dict)]
    if isinstance(data, list):
        return [e for e in data if isinstance(e, dict)]
    return []


def to_raw_item(element: dict) -> RawItem | None:
    stock = element.get("stockCount")
    if stock is None and isinstance(element.get("itemStock"), dict):
        stock = element["itemStock"].get("quantity")
    try:
        return RawItem(
            external_id=str(element["id"]),
            display_name=str(element.get("name") or "").strip(),
            unit_price=element.get("price"),
            stock_count=max(int(stock or 0), 0),
        )
    except (KeyError, TypeError, ValueError, ValidationError):
        logger.warning(f"Skipping malformed inventory element: {element.get('id')}")
        return None


class InventoryClient:
    """
    Klient listingu pozycji POS (Clover /v3/merchants/{mid}/items).
    Stronicowanie offset/limit, retry na 429/502/503 z Retry-After.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        merchant_id: str | None = None,
        page_size: int | None = None,
        max_pages: int | None = None,
        max_retries: int | None = None,
        page_delay: float | None = None,
        timeout: int = 15,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or settings.CLOVER_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.CLOVER_API_TOKEN
        self.merchant_id = merchant_id if merchant_id is not None else settings.CLOVER_MERCHANT_ID

        #fail fast przy starcie joba, nie przy kazdej stronie
        if not self.token:
            raise ConfigurationError("CLOVER_API_TOKEN environment variable is not set")
        if not self.merchant_id:
            raise ConfigurationError("CLOVER_MERCHANT_ID environment variable is not set")

        self.page_size = page_size or settings.INVENTORY_PAGE_SIZE
        self.max_pages = max_pages or settings.INVENTORY_MAX_PAGES
        self.max_retries = max_retries or settings.INVENTORY_MAX_RETRIES
        self.page_delay = settings.INVENTORY_PAGE_DELAY_SECONDS if page_delay is None else page_delay
        self.timeout = timeout
        self.session = session or requests.Session()
        self.sleep = sleep

    @property
    def items_url(self) -> str:
        return f"{self.base_url}/v3/merchants/{self.merchant_id}/items"

    def _get_once(self, offset: int):
        resp = self.session.get(
            self.items_url,
            params={"limit": self.page_size, "offset": offset},
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        if resp.status_code in RETRYABLE_STATUSES:
            retry_after = parse_retry_after(resp.headers.get("Retry-After"))
            logger.warning(
                f"Inventory page offset={offset} got HTTP {resp.status_code}, "
                f"retry_after={retry_after}"
            )
            raise RetryableStatusError(resp.status_code, retry_after)
        if not resp.ok:
            raise UpstreamError(f"Inventory API error: {resp.status_code} {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("Inventory API returned non-JSON body") from e

    def fetch_elements(self, offset: int) -> List[dict]:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_retry_after(),
            retry=retry_if_exception_type((RetryableStatusError, requests.RequestException)),
            sleep=self.sleep,
        )
        try:
            data = retrying(self._get_once, offset)
        except RetryError as e:
            last = e.last_attempt.exception()
            raise UpstreamError(
                f"Inventory page offset={offset} failed after {self.max_retries} attempts: {last}"
            ) from last

        return parse_items_page(data)

    def iter_pages(self) -> Iterator[List[RawItem]]:
        offset = 0
        for page_number in range(self.max_pages):
            if page_number > 0 and self.page_delay > 0:
                self.sleep(self.page_delay)

            logger.info(f"Fetching inventory page {page_number + 1} (offset={offset})")
            elements = self.fetch_elements(offset)
            page = [item for item in map(to_raw_item, elements) if item is not None]
            yield page

            if len(elements) < self.page_size:
                return
            offset += self.page_size

        logger.warning(
            f"Inventory fetch hit the page cap ({self.max_pages} pages of {self.page_size}), "
            "remaining items were not fetched"
        )

