"""Adapters layer for the rank sync service.

This package contains the Riot API, database and observability adapters.
"""
