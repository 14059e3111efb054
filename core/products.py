# core/products.py
import json
import os
from typing import Any, Dict, List, Tuple

from fetchers import tcgplayer

from .errors import CardDBError, ParseError
from .logger import get_logger
from .models import Cache, Candidate, Collection, format_id

logger = get_logger(__name__)

PRODUCT_LINE = os.getenv("PRODUCT_LINE", "One Piece Card Game")
PRODUCT_URL = "https://www.tcgplayer.com/product/{}"
NO_DESCRIPTION = "No description provided."


def _load_object(text: str, what: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ParseError(f"{what} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"{what} is not a JSON object")
    return data


def _str_field(node: Dict[str, Any], key: str, default: str = "") -> str:
    value = node.get(key)
    return value if isinstance(value, str) else default


def _custom_attribute(product: Dict[str, Any], key: str) -> str | None:
    attrs = product.get("customAttributes")
    if not isinstance(attrs, dict):
        return None
    value = attrs.get(key)
    return value if isinstance(value, str) else None


def parse_product(text: str) -> Dict[str, Any]:
    return _load_object(text, "product details")


def display_name(product: Dict[str, Any]) -> str:
    """
    "{productName} {number}", with " (Pre Release)" appended for pre-release sets.
    A missing number leaves the trailing space in place.
    """
    name = _str_field(product, "productName")
    number = _custom_attribute(product, "number") or ""
    if "Pre Release" in _str_field(product, "setUrlName"):
        return f"{name} {number} (Pre Release)"
    return f"{name} {number}"


def market_value(product: Dict[str, Any]) -> float:
    value = product.get("marketPrice")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def description(product: Dict[str, Any]) -> str:
    # Spacing out the angle brackets keeps embedded markup from breaking the layout.
    text = _custom_attribute(product, "description")
    if text is None:
        return NO_DESCRIPTION
    return text.replace("<", " <").replace(">", "> ")


def product_url(product_id: str) -> str:
    return PRODUCT_URL.format(product_id)


def fetch_product(product_id: str, cache: Cache) -> Tuple[Dict[str, Any], Cache]:
    body, cache = tcgplayer.get_product_details(product_id, cache)
    return parse_product(body), cache


def total_worth(collection: Collection, cache: Cache) -> Tuple[float, Cache]:
    """Sum of market values over every card, one details lookup per card."""
    total = 0.0
    for card in collection.cards:
        try:
            product, cache = fetch_product(format_id(card.product_id), cache)
        except CardDBError as e:
            e.cache = cache
            raise
        total += market_value(product)
    return total, cache


def search_candidates(text: str, product_line: str = PRODUCT_LINE) -> List[Candidate]:
    """
    Selectable products from a search response. Only products of the given
    product line that carry a card number are offered; each keeps its position
    in the raw result list as its selection index.
    """
    data = _load_object(text, "search response")
    try:
        products = data["results"][0]["results"]
    except (KeyError, IndexError, TypeError) as e:
        raise ParseError(f"unexpected search response layout: {e!r}") from e
    if not isinstance(products, list):
        raise ParseError("search results are not a list")

    out: List[Candidate] = []
    for index, product in enumerate(products):
        if not isinstance(product, dict):
            continue
        if not _custom_attribute(product, "number"):
            continue
        if product.get("productLineName") != product_line:
            continue
        pid = product.get("productId")
        if isinstance(pid, bool) or not isinstance(pid, (int, float)):
            logger.debug("Skipping search hit without a numeric productId: %s", product)
            continue
        out.append(Candidate(index=index, product_id=pid, name=display_name(product)))

    logger.debug("Search response yielded %d candidates of %d results", len(out), len(products))
    return out
