"""Constants for the Lounge Remote integration."""

from __future__ import annotations

from typing import Final

# Domain
DOMAIN: Final = "lounge_remote"

# HTTP base & paths
LOUNGE_BASE_URL: Final = "https://www.youtube.com/api/lounge"
PAIRING_PATH: Final = "/pairing/get_screen"
BIND_PATH: Final = "/bc/bind"

# Protocol fields sent with every channel request
REMOTE_DEVICE: Final = "REMOTE_CONTROL"
PROTOCOL_VERSION: Final = "8"
DEFAULT_CLIENT_NAME: Final = "Home Assistant"

# Command names understood by the screen
COMMAND_ADD_VIDEO: Final = "addVideo"
COMMAND_SET_VIDEO: Final = "setVideo"

# Timeouts (seconds)
REQUEST_TIMEOUT: Final = 30
POLL_TIMEOUT: Final = 180
INACTIVITY_TIMEOUT: Final = 30 * 60

# Long-poll retry policy
MAX_POLL_RETRIES: Final = 3
RETRY_BASE_DELAY: Final = 2.0

# Config entry keys
CONF_ROOM: Final = "room"
CONF_PAIRING_CODE: Final = "pairing_code"

# Services
SERVICE_PAIR: Final = "pair"
SERVICE_RECONNECT: Final = "reconnect"
SERVICE_DISCONNECT: Final = "disconnect"
SERVICE_ADD_VIDEO: Final = "add_video"
SERVICE_PLAY_NOW: Final = "play_now"
ATTR_VIDEO_ID: Final = "video_id"

# Credential persistence
STORAGE_KEY: Final = f"{DOMAIN}.credentials"
STORAGE_VERSION: Final = 1

CONNECTION_LOST_MESSAGE: Final = "TV connection lost (server restarted)"
INACTIVITY_MESSAGE: Final = "disconnected due to inactivity"


def signal_status(room: str) -> str:
    """Signal name for session status updates dispatched to platforms."""

    return f"{DOMAIN}_{room}_status"
