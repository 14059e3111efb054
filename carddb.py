import os
import sys
import webbrowser
from pathlib import Path
from typing import List, Tuple

from tabulate import tabulate

from core import storage
from core.errors import CardDBError, NetworkError, ParseError
from core.logger import get_logger
from core.models import Cache, Card, Collection, format_id
from core.products import display_name, fetch_product, market_value, search_candidates
from core.report_html import REPORT_PATH, generate_report
from core.selection import parse_position, parse_selection
from fetchers import tcgplayer

logger = get_logger(__name__)

CLEAR_SCREEN = os.getenv("CLEAR_SCREEN", "true").lower() == "true"

MENU = "[1] add new card [2] remove a card [3] generate card report [4] clear cache [5] quit"


def ask(prompt: str) -> str:
    return input(prompt).strip()


def confirm(prompt: str) -> bool:
    return ask(f"{prompt} (y/n) ").lower().startswith("y")


def pause(message: str = "Hit Enter to continue...") -> None:
    input(message)


def clear(cache: Cache) -> None:
    if CLEAR_SCREEN:
        print("\033c", end="")
    print("###################")
    print("#     card db     #")
    print("###################\n")
    print(f"Cache: {len(cache)} requests\n")


def load_state(
    cache_path: str = storage.CACHE_PATH, db_path: str = storage.CARD_DB_PATH
) -> Tuple[Collection, Cache]:
    """Load the cache (offering to wipe it when stale) and the collection."""
    print("[-] loading webcache")
    cache = storage.load_cache(cache_path)

    age = storage.cache_age_hours(cache_path)
    if storage.cache_too_old(age):
        logger.info("Cache %s is %.1f hours old", cache_path, age)
        if confirm("[!] cache is more than a day old! Would you like to wipe it?"):
            cache = {}
            print("[-] cache wiped!")
    print("[+] loaded webcache")

    print("[-] loading card data")
    collection = storage.load_collection(db_path)
    print("[+] loaded card data")
    return collection, cache


def collection_rows(collection: Collection, cache: Cache) -> Tuple[List[List[str]], Cache]:
    """
    One table row per card. A card whose details cannot be fetched shows
    "error" instead of aborting the whole listing.
    """
    rows: List[List[str]] = []
    for pos, card in enumerate(collection.cards):
        pid = format_id(card.product_id)
        try:
            product, cache = fetch_product(pid, cache)
        except (NetworkError, ParseError) as e:
            logger.error("Could not list card %s: %s", pid, e)
            rows.append([str(pos), "error", pid, "error"])
            continue
        price = product.get("marketPrice")
        if isinstance(price, (int, float)) and not isinstance(price, bool):
            price_str = f"${market_value(product):.2f}"
        else:
            price_str = "error"
        rows.append([str(pos), display_name(product), pid, price_str])
    return rows, cache


def show_collection(collection: Collection, cache: Cache) -> Cache:
    clear(cache)
    print("Loading...")
    rows, cache = collection_rows(collection, cache)
    clear(cache)
    print(tabulate(rows, headers=["Pos", "Name", "ID", "Market Price"], tablefmt="github"))
    print()
    return cache


def add_card(collection: Collection, cache: Cache, db_path: str = storage.CARD_DB_PATH) -> Tuple[Collection, Cache]:
    clear(cache)
    # Used verbatim: the cache key is the exact text typed.
    term = input("Input Card Name: ")
    if not term.strip():
        return collection, cache

    body, cache = tcgplayer.search(term, cache)
    try:
        candidates = search_candidates(body)

        clear(cache)
        if not candidates:
            print("No results! Try searching the name in a different way!")
            pause()
            return collection, cache

        print("Select Correct Card (ID:COUNT) (eg. 0:1 for 1 of 0):")
        for candidate in candidates:
            print(f"[{candidate.index}] {candidate.name}")

        candidate, count = parse_selection(ask("\nSelection (ID:COUNT) (eg. 0:1 for 1 of 0): "), candidates)
    except CardDBError as e:
        # The search response stays cached even though nothing is added.
        e.cache = cache
        raise

    cards = collection.cards + [Card(product_id=candidate.product_id) for _ in range(count)]
    collection = Collection(cards=cards)
    logger.info("Added %d x %s (%s)", count, candidate.name, format_id(candidate.product_id))

    if not storage.save_collection(collection, db_path):
        print("[error] Collection could not be saved!")
        pause()
    return collection, cache


def remove_card(collection: Collection, cache: Cache, db_path: str = storage.CARD_DB_PATH) -> Tuple[Collection, Cache]:
    if not collection.cards:
        print("Your collection is empty!")
        pause()
        return collection, cache

    position = parse_position(ask("Selection: "), len(collection.cards))
    pid = format_id(collection.cards[position].product_id)
    product, cache = fetch_product(pid, cache)
    name = display_name(product)

    if not confirm(f"Are you sure you want to delete {name}?"):
        return collection, cache

    cards = collection.cards[:position] + collection.cards[position + 1:]
    collection = Collection(cards=cards)
    logger.info("Removed %s (%s) from position %d", name, pid, position)

    if not storage.save_collection(collection, db_path):
        print("[error] Collection could not be saved!")
        pause()
    return collection, cache


def report(
    collection: Collection,
    cache: Cache,
    report_path: str = REPORT_PATH,
    cache_path: str = storage.CACHE_PATH,
) -> Cache:
    ok, cache = generate_report(collection, cache, report_path)
    clear(cache)

    if not ok:
        print("[error] could not generate a report!")
        pause()
        return cache

    if not storage.save_cache(cache, cache_path):
        print("[error] cache could not be saved!")
    if confirm(f"generated a report! open {report_path}?"):
        webbrowser.open(Path(report_path).resolve().as_uri())
    pause()
    return cache


def quit_app(cache: Cache, cache_path: str = storage.CACHE_PATH) -> None:
    if not storage.save_cache(cache, cache_path):
        print("[error] cache could not be saved!")
    logger.info("Exiting with %d cached responses.", len(cache))
    raise SystemExit(0)


def dispatch(choice: str, collection: Collection, cache: Cache) -> Tuple[Collection, Cache]:
    if choice == "1":
        return add_card(collection, cache)
    if choice == "2":
        return remove_card(collection, cache)
    if choice == "3":
        return collection, report(collection, cache)
    if choice == "4":
        print("[-] clearing cache")
        cache, ok = storage.clear_cache()
        if not ok:
            print("[error] cache could not be saved!")
            pause()
        return collection, cache
    if choice == "5":
        quit_app(cache)
    pause("Incorrect Option! Hit Enter to try again!")
    return collection, cache


def menu(collection: Collection, cache: Cache) -> None:
    while True:
        try:
            cache = show_collection(collection, cache)
            print(MENU)
            choice = ask("> ")
            collection, cache = dispatch(choice, collection, cache)
        except CardDBError as e:
            if e.cache is not None:
                cache = e.cache
            logger.warning("Operation aborted: %s", e)
            print(f"[!] {e}")
            pause()
        except (EOFError, KeyboardInterrupt):
            print()
            quit_app(cache)


def main() -> int:
    collection, cache = load_state()
    menu(collection, cache)
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except (EOFError, KeyboardInterrupt):
        raise SystemExit(0)
    except Exception as e:
        logger.exception("Fatal carddb error: %s", e)
        print(f"Fatal error: {e}", file=sys.stderr)
        raise SystemExit(2)
