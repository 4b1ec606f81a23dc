"""
Webhook feed relay.

Test cases:
- Each event is posted with a readable description and its JSON form
- Spoilers are masked
- Failed posts are retried once and never raised
"""

import asyncio
import json

import httpx
import pytest

from jasb.config import NotifierConfig
from jasb.schemas.feed import (
    BetComplete,
    Highlighted,
    IdAndName,
    NewBet,
    NotableStake,
    UserSummary,
)
from jasb.services.external_notifier import WebhookRelay, describe

GAME = IdAndName(id="game", name="The Game")
BET = IdAndName(id="bet", name="Who wins")
CONFIG = NotifierConfig(webhook_url="https://hooks.example.com/feed")


def run_relay(handler, events):
    async def main():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            async with WebhookRelay(CONFIG, client=client) as relay:
                await relay.deliver(events)

    asyncio.run(main())


def test_posts_each_event():
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(204)

    events = [
        NewBet(game=GAME, bet=BET, spoiler=False),
        NotableStake(
            game=GAME,
            bet=BET,
            spoiler=False,
            option=IdAndName(id="a", name="A"),
            user=UserSummary(id="alice", name="Alice"),
            message="easy money",
            stake=600,
        ),
    ]
    run_relay(handler, events)

    assert [body["title"] for body in received] == ["New Bet", "Big Bet"]
    assert received[0]["event"]["type"] == "NewBet"
    assert "“Who wins”" in received[0]["description"]
    assert "easy money" in received[1]["description"]


def test_descriptions():
    complete = BetComplete(
        game=GAME,
        bet=BET,
        spoiler=True,
        winners=[IdAndName(id="a", name="A")],
        highlighted=Highlighted(winners=[UserSummary(id="x", name="X")], amount=450),
        total_return=600,
        winning_stakes=2,
    )
    text = describe(complete)["description"]
    assert "||Who wins||" in text
    assert "X won 450!" in text
    assert "They and 1 others share a total of 600 in winnings." in text

    nobody = complete.model_copy(
        update={
            "spoiler": False,
            "winning_stakes": 0,
            "highlighted": Highlighted(winners=[], amount=0),
        }
    )
    assert "No one bet on that option" in describe(nobody)["description"]


def test_failures_are_retried_then_swallowed():
    attempts = []

    def handler(request):
        attempts.append(request.url)
        return httpx.Response(500)

    run_relay(handler, [NewBet(game=GAME, bet=BET, spoiler=False)])
    assert len(attempts) == 2


def test_requires_webhook_url():
    with pytest.raises(ValueError):
        WebhookRelay(NotifierConfig())
