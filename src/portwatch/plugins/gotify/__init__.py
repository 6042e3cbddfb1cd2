"""Gotify alert destination plugin."""

from portwatch.plugins.gotify.client import (
    GotifyAPIClient,
    GotifyAPIError,
    build_message_url,
    build_payload,
)
from portwatch.plugins.gotify.provider import GotifyDestination, create_destination

__all__ = [
    "GotifyAPIClient",
    "GotifyAPIError",
    "GotifyDestination",
    "build_message_url",
    "build_payload",
    "create_destination",
]
