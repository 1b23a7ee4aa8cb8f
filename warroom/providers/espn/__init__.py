"""ESPN provider."""

from warroom.providers.espn.client import ESPNFantasyClient, ESPNScoreboardClient
from warroom.providers.espn.game_status import ESPNGameStatusProvider
from warroom.providers.espn.provider import ESPNPlatform

__all__ = [
    "ESPNFantasyClient",
    "ESPNGameStatusProvider",
    "ESPNPlatform",
    "ESPNScoreboardClient",
]
