# core/models.py
from dataclasses import dataclass, field
from typing import Dict, List, Union

ProductId = Union[int, float, str]

# Response cache: "<operation>:<argument>" -> response body text.
Cache = Dict[str, str]


@dataclass
class Card:
    """
    A single owned copy of a catalog product.
    The id is kept as loaded from JSON and may render with a trailing ".0".
    """
    product_id: ProductId


@dataclass
class Collection:
    """
    Ordered list of owned cards. Duplicate product ids are separate copies;
    position only matters for display.
    """
    cards: List[Card] = field(default_factory=list)


@dataclass
class Candidate:
    """A search hit the operator can pick, indexed by its position in the raw results."""
    index: int
    product_id: ProductId
    name: str


def format_id(product_id: ProductId) -> str:
    """
    Normalize a product id for use as a cache key or URL path segment.
    Strips exactly one trailing ".0", otherwise returns the id unchanged.
    """
    if isinstance(product_id, float) and product_id.is_integer():
        return str(int(product_id))
    text = str(product_id)
    if text.endswith(".0"):
        return text[:-2]
    return text
