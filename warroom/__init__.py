"""Fantasy matchup snapshot coordinator for Sleeper and ESPN leagues."""

__version__ = "0.4.0"
