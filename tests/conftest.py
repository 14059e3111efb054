"""Shared fixtures for carddb tests.

File logging is switched off before any project module configures the root
logger, and the catalog session is replaced per test so nothing reaches the
network.
"""

from __future__ import annotations

import json
import os
from typing import Any
from unittest.mock import MagicMock

os.environ["LOG_TO_FILE"] = "false"
os.environ["CLEAR_SCREEN"] = "false"

import pytest
import requests

from fetchers import tcgplayer


def make_response(
    text: str = "", content: bytes | None = None, status_code: int = 200
) -> MagicMock:
    """Build a stand-in for requests.Response."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.text = text
    resp.content = content if content is not None else text.encode("utf-8")
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


def product_json(
    name: str = "Monkey.D.Luffy",
    number: str | None = "OP01-001",
    set_url_name: str = "Romance Dawn",
    market_price: Any = 1.5,
    description: str | None = None,
) -> str:
    doc: dict[str, Any] = {"productName": name, "setUrlName": set_url_name}
    attrs: dict[str, Any] = {}
    if number is not None:
        attrs["number"] = number
    if description is not None:
        attrs["description"] = description
    doc["customAttributes"] = attrs
    if market_price is not None:
        doc["marketPrice"] = market_price
    return json.dumps(doc)


@pytest.fixture(autouse=True)
def session(monkeypatch) -> MagicMock:
    """Replace the catalog session; tests configure .request as needed."""
    mock = MagicMock(spec=requests.Session)
    mock.request.side_effect = AssertionError("unexpected network call")
    monkeypatch.setattr(tcgplayer, "SESSION", mock)
    return mock
