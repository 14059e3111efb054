import os
from pathlib import Path
from typing import Any, Dict, List, Tuple

from jinja2 import Environment, FileSystemLoader

from fetchers import tcgplayer

from .errors import CardDBError
from .logger import get_logger
from .models import Cache, Collection, format_id
from .products import description, display_name, fetch_product, market_value, product_url, total_worth
from .storage import write_text, now_utc

logger = get_logger(__name__)

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

REPORT_PATH = os.getenv("REPORT_PATH", "report.html")
REPORT_TITLE = os.getenv("REPORT_TITLE", "One Piece TCG Card List")


def _money(value: float) -> str:
    return f"{value:.2f}"


def build_html_report(cards: List[Dict[str, Any]], total: float) -> str:
    """
    Render the report page. Each card dict carries name, url, description,
    value_str and image_b64; descriptions are inserted as-is.
    """
    template = env.get_template("report.html")
    ctx = {
        "title": REPORT_TITLE,
        "total_str": _money(total),
        "generated_at": now_utc().strftime("%Y-%m-%d %H:%M UTC"),
        "cards": cards,
    }
    return template.render(**ctx)


def collect_report_cards(collection: Collection, cache: Cache) -> Tuple[List[Dict[str, Any]], Cache]:
    cards: List[Dict[str, Any]] = []
    size = len(collection.cards)
    for i, card in enumerate(collection.cards):
        pid = format_id(card.product_id)
        print(f"generating report... {i / size * 100:.2f}%")

        try:
            product, cache = fetch_product(pid, cache)
            image_b64, cache = tcgplayer.card_image_b64(pid, cache)
        except CardDBError as e:
            e.cache = cache
            raise
        cards.append(
            {
                "name": display_name(product),
                "url": product_url(pid),
                "description": description(product),
                "value_str": _money(market_value(product)),
                "image_b64": image_b64,
            }
        )
    return cards, cache


def generate_report(collection: Collection, cache: Cache, path: str = REPORT_PATH) -> Tuple[bool, Cache]:
    """
    Fetch everything the report needs (strictly in sequence), render it and
    write it to path. Returns whether the file was written and the updated cache.
    NetworkError and ParseError propagate and leave no file behind; the
    error's cache keeps whatever was fetched before the failure.
    """
    total, cache = total_worth(collection, cache)
    cards, cache = collect_report_cards(collection, cache)
    html = build_html_report(cards, total)

    ok = write_text(path, html)
    if ok:
        logger.info("Wrote report for %d cards (total $%.2f) to %s", len(cards), total, path)
    return ok, cache
