"""Configuration manager using QSettings for persistent storage."""

import logging

from PySide6.QtCore import QObject, QSettings, Signal

from fmdxctrl.core.url import normalize_server_url
from fmdxctrl.errors import InvalidInput
from fmdxctrl.models.settings import Settings, SignalUnit

logger = logging.getLogger(__name__)

# Settings keys
_KEY_LAST_SERVER_URL = "last_server_url"

# Audio / display
_KEY_SIGNAL_UNIT = "audio/signal_unit"
_KEY_NETWORK_BUFFER = "audio/network_buffer"
_KEY_PLAYER_BUFFER = "audio/player_buffer"
_KEY_RESTART_AUDIO_ON_TUNE = "audio/restart_audio_on_tune"

_DEFAULTS = Settings()


class ConfigManager(QObject):
    """Wrapper around QSettings for type-safe config access.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\FMDX-CTRL\\FMDX-CTRL
    - macOS: ~/Library/Preferences/com.FMDX-CTRL.FMDX-CTRL.plist
    - Linux: ~/.config/FMDX-CTRL/FMDX-CTRL.conf

    Example:
        config = ConfigManager()
        config.settings_changed.connect(on_settings)
        config.save_settings(Settings(player_buffer_ms=3000))
    """

    settings_changed = Signal(object)  # Settings
    server_url_changed = Signal(str)

    def __init__(self, organization: str = "FMDX-CTRL", application: str = "FMDX-CTRL") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        super().__init__()
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    def get(self, key: str, default: object = None) -> object:
        """Return a raw stored value, or ``default`` if unset."""
        return self._settings.value(key, default)

    def set(self, key: str, value: object) -> None:
        """Store a raw value."""
        self._settings.setValue(key, value)

    # -- Server ---------------------------------------------------------------

    def get_server_url(self) -> str:
        """Return the last server URL, re-normalized when possible.

        Returns:
            URL string, or empty string if none saved.
        """
        value = self._settings.value(_KEY_LAST_SERVER_URL, "", str)
        raw = str(value) if value else ""
        if not raw:
            return ""
        try:
            return normalize_server_url(raw)
        except InvalidInput:
            logger.debug("Stored server URL %r no longer valid, using as-is", raw)
            return raw

    def set_server_url(self, url: str) -> None:
        """Persist the last server URL.

        Args:
            url: Normalized server URL.
        """
        self._settings.setValue(_KEY_LAST_SERVER_URL, url)
        self.server_url_changed.emit(url)

    # -- User settings --------------------------------------------------------

    def get_settings(self) -> Settings:
        """Load the user settings, falling back to defaults.

        Returns:
            Settings record.
        """
        unit_name = self._settings.value(_KEY_SIGNAL_UNIT, _DEFAULTS.signal_unit.name, str)
        network = self._settings.value(_KEY_NETWORK_BUFFER, _DEFAULTS.network_buffer_chunks, int)
        player = self._settings.value(_KEY_PLAYER_BUFFER, _DEFAULTS.player_buffer_ms, int)
        restart = self._settings.value(
            _KEY_RESTART_AUDIO_ON_TUNE, _DEFAULTS.restart_audio_on_tune, bool
        )
        return Settings(
            signal_unit=SignalUnit.from_name(str(unit_name)),
            network_buffer_chunks=int(network),  # type: ignore[arg-type]
            player_buffer_ms=int(player),  # type: ignore[arg-type]
            restart_audio_on_tune=bool(restart),
        )

    def save_settings(self, settings: Settings) -> None:
        """Persist the user settings and notify listeners.

        Args:
            settings: Settings record to save.
        """
        self._settings.setValue(_KEY_SIGNAL_UNIT, settings.signal_unit.name)
        self._settings.setValue(_KEY_NETWORK_BUFFER, settings.network_buffer_chunks)
        self._settings.setValue(_KEY_PLAYER_BUFFER, settings.player_buffer_ms)
        self._settings.setValue(_KEY_RESTART_AUDIO_ON_TUNE, settings.restart_audio_on_tune)
        self.settings_changed.emit(settings)

    # -- General settings ------------------------------------------------------

    def clear(self) -> None:
        """Clear all settings (useful for testing or reset)."""
        self._settings.clear()

    def sync(self) -> None:
        """Force settings to be written to disk."""
        self._settings.sync()
