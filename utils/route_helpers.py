"""
Shared route helper utilities.

Reduces boilerplate in the route modules for player validation and manager operations.
"""
import logging
from typing import Any, Coroutine

from fastapi import HTTPException


def require_running_player(player_manager):
    """
    Validate that the player loop is running.

    Args:
        player_manager: PlayerManager instance

    Returns:
        The running player manager

    Raises:
        HTTPException: If the player has been stopped
    """
    if not player_manager.running:
        raise HTTPException(status_code=409, detail="Player is not running")
    return player_manager


async def manager_operation(coro: Coroutine, error_context: str = "operation") -> Any:
    """
    Execute a manager operation with standard error handling.

    Args:
        coro: Awaitable coroutine to execute
        error_context: Context string for error logging

    Returns:
        Whatever the operation returned

    Raises:
        HTTPException: If the operation raised
    """
    try:
        return await coro
    except HTTPException:
        raise
    except Exception as e:
        logging.error(f"Failed to {error_context}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
