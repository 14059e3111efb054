"""Tests for the interactive command loop."""

from __future__ import annotations

import json
import os
import time
from typing import Iterator

import pytest

import carddb
from conftest import make_response, product_json
from core import storage
from core.models import Card, Collection


def _search_body() -> str:
    return json.dumps(
        {
            "results": [
                {
                    "results": [
                        {
                            "productId": 111.0,
                            "productName": "Sanji",
                            "productLineName": "One Piece Card Game",
                            "setUrlName": "Romance Dawn",
                            "customAttributes": {"number": "OP01-013"},
                        }
                    ]
                }
            ]
        }
    )


@pytest.fixture
def answers(monkeypatch):
    """Feed scripted console answers to input()."""

    def feed(*lines: str) -> None:
        it: Iterator[str] = iter(lines)
        monkeypatch.setattr("builtins.input", lambda prompt="": next(it))

    return feed


class TestLoadState:
    def test_fresh_start(self, tmp_path, answers) -> None:
        answers()
        collection, cache = carddb.load_state(
            str(tmp_path / "webcache.dat"), str(tmp_path / "card.json")
        )
        assert collection == Collection()
        assert cache == {}

    def test_stale_cache_wiped_on_confirm(self, tmp_path, answers) -> None:
        path = tmp_path / "webcache.dat"
        path.write_text(json.dumps({"search:x": "y"}))
        ts = time.time() - 25 * 3600
        os.utime(path, (ts, ts))
        answers("y")

        _, cache = carddb.load_state(str(path), str(tmp_path / "card.json"))

        assert cache == {}
        # Wiping is in memory only until the next save.
        assert json.loads(path.read_text()) == {"search:x": "y"}

    def test_stale_cache_kept_on_decline(self, tmp_path, answers) -> None:
        path = tmp_path / "webcache.dat"
        path.write_text(json.dumps({"search:x": "y"}))
        ts = time.time() - 25 * 3600
        os.utime(path, (ts, ts))
        answers("n")

        _, cache = carddb.load_state(str(path), str(tmp_path / "card.json"))

        assert cache == {"search:x": "y"}


class TestAddCard:
    def test_adds_copies_and_saves(self, tmp_path, answers) -> None:
        db_path = tmp_path / "card.json"
        cache = {"search:sanji": _search_body()}
        answers("sanji", "0:2")

        collection, updated = carddb.add_card(Collection(cards=[Card(5)]), cache, str(db_path))

        assert collection.cards == [Card(5), Card(111.0), Card(111.0)]
        assert updated is cache
        assert storage.load_collection(str(db_path)) == collection

    def test_bad_selection_mutates_nothing(self, tmp_path, answers) -> None:
        db_path = tmp_path / "card.json"
        original = Collection(cards=[Card(5)])
        answers("sanji", "0-2")

        with pytest.raises(carddb.CardDBError):
            carddb.add_card(original, {"search:sanji": _search_body()}, str(db_path))

        assert original.cards == [Card(5)]
        assert not db_path.exists()

    def test_no_results(self, tmp_path, answers) -> None:
        empty = json.dumps({"results": [{"results": []}]})
        answers("nobody", "")

        collection, _ = carddb.add_card(Collection(), {"search:nobody": empty}, str(tmp_path / "c.json"))

        assert collection == Collection()


class TestRemoveCard:
    def test_confirmed_removal(self, tmp_path, answers) -> None:
        db_path = tmp_path / "card.json"
        cache = {"get_product_details:2": product_json("Nami", "OP01-016")}
        answers("1", "y")

        collection, _ = carddb.remove_card(
            Collection(cards=[Card(1), Card(2), Card(3)]), cache, str(db_path)
        )

        assert collection.cards == [Card(1), Card(3)]
        assert storage.load_collection(str(db_path)) == collection

    def test_declined_removal(self, tmp_path, answers) -> None:
        cache = {"get_product_details:2": product_json("Nami", "OP01-016")}
        answers("0", "n")

        collection, _ = carddb.remove_card(Collection(cards=[Card(2)]), cache, str(tmp_path / "c.json"))

        assert collection.cards == [Card(2)]


def test_listing_marks_failed_rows(session) -> None:
    session.request.side_effect = None
    session.request.return_value = make_response(status_code=500)
    cache = {"get_product_details:1": product_json("Luffy", "OP01-001", market_price=2)}

    rows, _ = carddb.collection_rows(Collection(cards=[Card(1), Card(2)]), cache)

    assert rows == [
        ["0", "Luffy OP01-001", "1", "$2.00"],
        ["1", "error", "2", "error"],
    ]


def test_menu_recovers_from_errors_and_quits(tmp_path, monkeypatch, answers) -> None:
    monkeypatch.chdir(tmp_path)
    cache = {"get_product_details:1": product_json()}
    # Unknown option, bad position, then quit.
    answers("9", "", "2", "x", "", "5")

    with pytest.raises(SystemExit) as exc:
        carddb.menu(Collection(cards=[Card(1)]), cache)

    assert exc.value.code == 0
    assert json.loads((tmp_path / carddb.storage.CACHE_PATH).read_text()) == cache


def test_report_saves_cache_and_opens_browser(tmp_path, monkeypatch, answers) -> None:
    opened = []
    monkeypatch.setattr(carddb.webbrowser, "open", opened.append)
    cache_path = tmp_path / "webcache.dat"
    cache = {
        "get_product_details:1": product_json(),
        "card_image_b64:1": "aW1n",
    }
    answers("y", "")

    carddb.report(Collection(cards=[Card(1)]), cache, str(tmp_path / "report.html"), str(cache_path))

    assert json.loads(cache_path.read_text()) == cache
    assert opened and opened[0].startswith("file://")


def test_search_stays_cached_after_bad_selection(tmp_path, monkeypatch, session, answers) -> None:
    monkeypatch.chdir(tmp_path)
    session.request.side_effect = None
    session.request.return_value = make_response(_search_body())
    # Add, search "sanji", malformed selection, acknowledge, quit.
    answers("1", "sanji", "0-2", "", "5")

    with pytest.raises(SystemExit):
        carddb.menu(Collection(), {})

    saved = json.loads((tmp_path / carddb.storage.CACHE_PATH).read_text())
    assert saved == {"search:sanji": _search_body()}
    assert session.request.call_count == 1


def test_clear_cache_write_failure_is_shown(tmp_path, monkeypatch, capsys, answers) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / carddb.storage.CACHE_PATH).mkdir()
    answers("")

    collection, cache = carddb.dispatch("4", Collection(), {"search:x": "y"})

    assert cache == {}
    assert collection == Collection()
    assert "[error] cache could not be saved!" in capsys.readouterr().out
