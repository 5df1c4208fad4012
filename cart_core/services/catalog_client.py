# cart_core/services/catalog_client.py
import requests
from requests import RequestException

from cart_core.domain.errors import CatalogUnavailable, NotFound
from cart_core.utils.retry import http_retry
from cart_core.utils.settings import CATALOG_SERVICE_URL, CATALOG_TIMEOUT_SECONDS
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogClient:
    """
    Catalog reader over HTTP.
    Prices are integer minor units; a variant price, when set, overrides
    the product price.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None, session: requests.Session | None = None):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else CATALOG_TIMEOUT_SECONDS
        self.http = session or requests.Session()

    def get_unit_price(self, product_id: str, variant_id: str | None = None) -> int:
        if variant_id:
            variant = self.fetch_variant(variant_id)
            if str(variant.get("product_id")) != str(product_id):
                raise NotFound(f"Variant {variant_id} does not belong to product {product_id}")
            if variant.get("price_cents") is not None:
                return self._price(variant["price_cents"], f"variant {variant_id}")

        product = self.fetch_product(product_id)
        return self._price(product.get("price_cents"), f"product {product_id}")

    def fetch_product(self, product_id: str) -> dict:
        return self._get(f"/products/{product_id}", f"Product {product_id} not found")

    def fetch_variant(self, variant_id: str) -> dict:
        return self._get(f"/variants/{variant_id}", f"Variant {variant_id} not found")

    def _get(self, path: str, not_found_message: str) -> dict:
        try:
            resp = self._request(path)
        except RequestException as e:
            logger.error(f"Catalog request {path} failed: {e}")
            raise CatalogUnavailable("Catalog service unavailable, try again") from e

        if resp.status_code == 404:
            raise NotFound(not_found_message)

        try:
            body = resp.json()
        except ValueError as e:
            logger.error(f"Catalog returned a malformed body for {path}: {e}")
            raise CatalogUnavailable("Catalog service returned a malformed response") from e

        if not isinstance(body, dict):
            logger.error(f"Catalog returned {type(body).__name__} for {path}, expected an object")
            raise CatalogUnavailable("Catalog service returned a malformed response")
        return body

    @http_retry()
    def _request(self, path: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"CatalogClient GET {url}")

        resp = self.http.get(url, timeout=self.timeout)
        if resp.status_code != 404:
            resp.raise_for_status()
        return resp

    @staticmethod
    def _price(value, what: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise CatalogUnavailable(f"Catalog returned an invalid price for {what}: {value!r}")
        return value
