"""
Core utilities and configuration for the episode sync service.

Modules:
    config: Process settings from environment variables (.env)
    runtime_config: Operational settings from the app_config table
    clock: Time source and courtesy delays
    database: Database connection and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import UpstreamRequestError, RateLimitError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    "SystemClock",
    "ConfigKey",
    "SyncConfig",
    # Exceptions
    "SyncException",
    "ConfigMissingError",
    "AuthenticationError",
    "UpstreamRequestError",
    "RateLimitError",
    "UpstreamAuthenticationError",
    "PersistenceError",
    "UnhandledSyncError",
]
