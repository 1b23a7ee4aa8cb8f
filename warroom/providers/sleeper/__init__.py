"""Sleeper provider."""

from warroom.providers.sleeper.client import SleeperClient
from warroom.providers.sleeper.players import SleeperPlayerDirectory
from warroom.providers.sleeper.provider import SleeperPlatform
from warroom.providers.sleeper.stats import SleeperStatsProvider

__all__ = [
    "SleeperClient",
    "SleeperPlatform",
    "SleeperPlayerDirectory",
    "SleeperStatsProvider",
]
