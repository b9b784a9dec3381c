"""Pipeline Board API Client package."""

from pipeline_client.http import URL as PIPELINE_SERVER_URL
from pipeline_client.session import BoardSession
from pipeline_client.tool import (
    # Status
    status,
    # Board
    get_board,
    # Applications
    get_applications,
    get_application,
    create_application,
    update_application,
    delete_application,
    # Transitions
    update_status,
    advance,
    reject,
    # Settings
    get_settings,
    update_settings,
    # Stages
    get_stages,
    add_stage,
    update_stage,
    remove_stage,
)

__all__ = [
    # Status
    "status",
    # Board
    "get_board",
    # Applications
    "get_applications",
    "get_application",
    "create_application",
    "update_application",
    "delete_application",
    # Transitions
    "update_status",
    "advance",
    "reject",
    # Settings
    "get_settings",
    "update_settings",
    # Stages
    "get_stages",
    "add_stage",
    "update_stage",
    "remove_stage",
    # Session
    "BoardSession",
    # Config
    "PIPELINE_SERVER_URL",
]
