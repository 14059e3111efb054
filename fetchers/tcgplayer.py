# fetchers/tcgplayer.py
import base64
import os
from typing import Tuple

import requests

from core.errors import NetworkError
from core.logger import get_logger
from core.models import Cache

logger = get_logger(__name__)

SEARCH_API = "https://mp-search-api.tcgplayer.com"
IMAGE_CDN = "https://tcgplayer-cdn.tcgplayer.com"

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))
USER_AGENT = os.getenv(
    "TCGPLAYER_USER_AGENT",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)

# Sent verbatim; the search endpoint expects exactly this filter/sort document.
SEARCH_BODY = (
    '{"algorithm":"sales_synonym_v2","from":0,"size":24,'
    '"filters":{"term":{},"range":{},"match":{}},'
    '"listingSearch":{"context":{"cart":{}},'
    '"filters":{"term":{"sellerStatus":"Live","channelId":0},'
    '"range":{"quantity":{"gte":1}},"exclude":{"channelExclusion":0}}},'
    '"context":{"cart":{},"shippingCountry":"US","userProfile":{}},'
    '"settings":{"useFuzzySearch":true,"didYouMean":{}},"sort":{}}'
)

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT})


def cache_key(operation: str, argument: str) -> str:
    return f"{operation}:{argument}"


def _request(method: str, url: str, **kwargs) -> requests.Response:
    logger.debug("%s %s", method, url)
    try:
        r = SESSION.request(method, url, timeout=HTTP_TIMEOUT, **kwargs)
        r.raise_for_status()
    except requests.RequestException as e:
        logger.error("%s %s failed: %s", method, url, e)
        raise NetworkError(f"{method} {url} failed: {e}") from e
    return r


def _with_entry(cache: Cache, key: str, value: str) -> Cache:
    updated = dict(cache)
    updated[key] = value
    return updated


def get_product_details(product_id: str, cache: Cache) -> Tuple[str, Cache]:
    """
    Product details JSON for a normalized product id.
    Returns (body, cache) where cache is the input on a hit, or a copy with the
    new entry on a miss. Raises NetworkError on failure.
    """
    key = cache_key("get_product_details", product_id)
    if key in cache:
        return cache[key], cache

    r = _request("GET", f"{SEARCH_API}/v2/product/{product_id}/details")
    body = r.text
    logger.info("Fetched product details for %s", product_id)
    return body, _with_entry(cache, key, body)


def search(term: str, cache: Cache) -> Tuple[str, Cache]:
    """
    Search results JSON for a free-text card name. The term is used verbatim in
    the cache key, so differently spelled queries are cached separately.
    """
    key = cache_key("search", term)
    if key in cache:
        return cache[key], cache

    r = _request(
        "POST",
        f"{SEARCH_API}/v1/search/request",
        params={"q": term},
        data=SEARCH_BODY,
        headers={"Content-Type": "application/json"},
    )
    body = r.text
    logger.info("Searched catalog for %r", term)
    return body, _with_entry(cache, key, body)


def card_image_b64(product_id: str, cache: Cache) -> Tuple[str, Cache]:
    """Base64-encoded 1000x1000 JPEG for a normalized product id."""
    key = cache_key("card_image_b64", product_id)
    if key in cache:
        return cache[key], cache

    r = _request("GET", f"{IMAGE_CDN}/product/{product_id}_in_1000x1000.jpg")
    encoded = base64.b64encode(r.content).decode("ascii")
    logger.info("Fetched image for %s (%d bytes)", product_id, len(r.content))
    return encoded, _with_entry(cache, key, encoded)
