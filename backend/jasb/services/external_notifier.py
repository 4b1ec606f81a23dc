"""Relays committed feed events to an external webhook."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jasb.config import NotifierConfig
from jasb.schemas.feed import BetComplete, FeedEvent, NewBet, NotableStake

logger = logging.getLogger(__name__)


def _mask(text: str, spoiler: bool) -> str:
    return f"||{text}||" if spoiler else text


def _join_and(names: list[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


def describe(event: FeedEvent) -> dict[str, str]:
    """Human-readable title and description for a feed event."""
    match event:
        case NewBet():
            return {
                "title": "New Bet",
                "description": (
                    f"New bet available on “{event.game.name}”: "
                    f"“{_mask(event.bet.name, event.spoiler)}”."
                ),
            }
        case NotableStake():
            return {
                "title": "Big Bet",
                "description": (
                    f"Big bet of {event.stake} with the message "
                    f"“{_mask(event.message, event.spoiler)}” on "
                    f"“{_mask(event.option.name, event.spoiler)}” in the bet "
                    f"“{_mask(event.bet.name, event.spoiler)}” for the game "
                    f"“{event.game.name}”."
                ),
            }
        case BetComplete():
            winners = [_mask(w.name, event.spoiler) for w in event.winners]
            if event.winning_stakes > 0:
                users = [u.name for u in event.highlighted.winners]
                others = event.winning_stakes - len(users)
                verb = "each won" if len(users) > 1 else "won"
                text = f"{_join_and(users)} {verb} {event.highlighted.amount}!"
                if others > 0:
                    text += (
                        f" They and {others} others share a total of "
                        f"{event.total_return} in winnings."
                    )
            else:
                target = "those options" if len(winners) > 1 else "that option"
                text = f"No one bet on {target}, {event.total_return} was lost."
            return {
                "title": "Bet Complete",
                "description": (
                    f"The bet “{_mask(event.bet.name, event.spoiler)}” for "
                    f"“{event.game.name}” was won by {_join_and(winners)}. {text}"
                ),
            }
    raise ValueError(f"Unknown feed event {event!r}")


class WebhookRelay:
    """Async webhook poster for feed events."""

    def __init__(
        self,
        config: NotifierConfig,
        client: httpx.AsyncClient | None = None,
    ):
        if not config.webhook_url:
            raise ValueError("webhook_url is required for the feed relay.")
        self.config = config
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> WebhookRelay:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        logger.info("Initialized WebhookRelay")
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        logger.info("Closed WebhookRelay")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("WebhookRelay must be used as async context manager")
        return self._client

    async def deliver(self, events: list[FeedEvent]) -> None:
        """Post each event, retrying once. Failures are logged, not raised."""
        for event in events:
            body = {**describe(event), "event": event.model_dump(mode="json")}
            for attempt in range(2):
                try:
                    response = await self.client.post(self.config.webhook_url, json=body)
                    response.raise_for_status()
                    logger.info(f"Relayed {event.type} event (status {response.status_code})")
                    break
                except httpx.HTTPError as e:
                    logger.warning(
                        f"Relaying {event.type} failed (attempt {attempt + 1}/2): {e}"
                    )
