"""API route modules."""

from jasb.api.routes.bets import router as bets_router
from jasb.api.routes.feed import router as feed_router
from jasb.api.routes.games import router as games_router
from jasb.api.routes.stakes import router as stakes_router
from jasb.api.routes.users import router as users_router

__all__ = [
    "bets_router",
    "feed_router",
    "games_router",
    "stakes_router",
    "users_router",
]
