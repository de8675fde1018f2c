"""Riot account and rank synchronization for the esports club roster."""

__version__ = "0.1.0"
