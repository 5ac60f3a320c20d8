from __future__ import annotations

from bizcard.core.urls import absolute_url, card_url, with_query


def test_absolute_url_uses_base():
    assert absolute_url("/static/card.css", base="https://cards.example.com/") == "https://cards.example.com/static/card.css"
    assert absolute_url("static/x.png", base="https://cards.example.com") == "https://cards.example.com/static/x.png"
    assert absolute_url("https://cdn.example.com/a.png", base="https://cards.example.com") == "https://cdn.example.com/a.png"


def test_card_url():
    assert card_url("alice", base="https://cards.example.com") == "https://cards.example.com/businesscard/alice"


def test_with_query_skips_empty_values():
    assert with_query("/businesscard", mode="signin", error="") == "/businesscard?mode=signin"
    assert with_query("/reset?a=1", token="t") == "/reset?a=1&token=t"
    assert with_query("/businesscard") == "/businesscard"
