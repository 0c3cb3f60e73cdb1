"""Configuration package for the media bridge."""

from src.config.settings import (
    PIPELINE_SHEETS,
    PIPELINE_TRELLO,
    GoogleCredentials,
    Settings,
    load_settings,
)

__all__ = [
    "PIPELINE_SHEETS",
    "PIPELINE_TRELLO",
    "GoogleCredentials",
    "Settings",
    "load_settings",
]
