"""Core business logic layer.

This module contains the session logic that bridges the asyncio tuner
collaborators with the Qt UI layer.

Classes:
    ConfigManager: QSettings wrapper for persisted settings.
    StateStore: Single owner of the session state, with Qt signals.
    CommandQueue: Bounded outbound command queue.
    SessionOrchestrator: Connection lifecycle, intents, scans and audio.
    SessionWorker: QThread hosting the orchestrator's event loop.
"""

from fmdxctrl.core.commands import CommandQueue
from fmdxctrl.core.config import ConfigManager
from fmdxctrl.core.session import SessionOrchestrator
from fmdxctrl.core.state import StateStore
from fmdxctrl.core.url import normalize_server_url
from fmdxctrl.core.worker import SessionWorker

__all__ = [
    "CommandQueue",
    "ConfigManager",
    "SessionOrchestrator",
    "SessionWorker",
    "StateStore",
    "normalize_server_url",
]
