# core/storage.py
import datetime
import json
import os
from typing import Any, Optional, Tuple

import pytz

from .errors import ParseError
from .logger import get_logger
from .models import Cache, Card, Collection

logger = get_logger(__name__)

CARD_DB_PATH = os.getenv("CARD_DB_PATH", "card.json")
CACHE_PATH = os.getenv("CACHE_PATH", "webcache.dat")
CACHE_MAX_AGE_HOURS = float(os.getenv("CACHE_MAX_AGE_HOURS", "24"))


def now_utc() -> datetime.datetime:
    return datetime.datetime.now(tz=pytz.UTC)


def write_text(path: str, data: str) -> bool:
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(data)
    except OSError as e:
        logger.error("Failed to write %s: %s", path, e)
        return False
    return True


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


def parse_collection(text: str) -> Collection:
    """
    Parse the persisted collection document: {"cards": [{"product_id": N}, ...]}.
    Raises ParseError on anything else.
    """
    try:
        data: Any = json.loads(text)
    except ValueError as e:
        raise ParseError(f"collection is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("cards"), list):
        raise ParseError("collection must be an object with a 'cards' list")

    cards = []
    for entry in data["cards"]:
        pid = entry.get("product_id") if isinstance(entry, dict) else None
        if isinstance(pid, bool) or not isinstance(pid, (int, float)):
            raise ParseError(f"invalid card entry: {entry!r}")
        cards.append(Card(product_id=pid))
    return Collection(cards=cards)


def load_collection(path: str = CARD_DB_PATH) -> Collection:
    """
    Load the collection, falling back to an empty one (with a warning) when the
    file is missing or malformed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        logger.warning("Collection file %s not found; starting with an empty collection.", path)
        return Collection()
    except OSError as e:
        logger.warning("Could not read collection %s: %s; using an empty collection.", path, e)
        return Collection()

    try:
        collection = parse_collection(text)
    except ParseError as e:
        logger.warning(
            "Could not import collection %s: %s. Using an empty collection; "
            "the file will be overwritten on the next save.",
            path, e,
        )
        return Collection()

    logger.info("Loaded %d cards from %s", len(collection.cards), path)
    return collection


def save_collection(collection: Collection, path: str = CARD_DB_PATH) -> bool:
    data = {"cards": [{"product_id": c.product_id} for c in collection.cards]}
    ok = write_text(path, json.dumps(data))
    if ok:
        logger.debug("Saved %d cards to %s", len(collection.cards), path)
    return ok


# ---------------------------------------------------------------------------
# Response cache
# ---------------------------------------------------------------------------


def load_cache(path: str = CACHE_PATH) -> Cache:
    """Load the response cache; a missing or malformed file yields a new empty dict."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable cache %s: %s", path, e)
        return {}

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        logger.debug("Ignoring cache %s: not a string-to-string object", path)
        return {}

    if not data:
        return {}
    logger.info("Loaded %d cached responses from %s", len(data), path)
    return data


def save_cache(cache: Cache, path: str = CACHE_PATH) -> bool:
    ok = write_text(path, json.dumps(cache))
    if ok:
        logger.debug("Saved %d cached responses to %s", len(cache), path)
    return ok


def clear_cache(path: str = CACHE_PATH) -> Tuple[Cache, bool]:
    """
    Reset the cache to an empty mapping and persist it.
    Returns the empty cache and whether it was written.
    """
    cache: Cache = {}
    ok = save_cache(cache, path)
    if ok:
        logger.info("Cache cleared at %s", path)
    return cache, ok


def cache_age_hours(
    path: str = CACHE_PATH, now: Optional[datetime.datetime] = None
) -> Optional[float]:
    """
    Hours since the cache file was last modified, or None if it does not exist.
    """
    try:
        mtime = os.path.getmtime(path)
    except OSError:
        return None
    modified = datetime.datetime.fromtimestamp(mtime, tz=pytz.UTC)
    now = now or now_utc()
    return (now - modified).total_seconds() / 3600


def cache_too_old(age_hours: Optional[float], max_age_hours: float = CACHE_MAX_AGE_HOURS) -> bool:
    if age_hours is None:
        return False
    return age_hours > max_age_hours
