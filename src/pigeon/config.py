# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating Pigeon configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/pigeon/  (default: ~/.config/pigeon/)
#   - Data:    $XDG_DATA_HOME/pigeon/    (default: ~/.local/share/pigeon/)
#
# Files:
#   - config.toml: accounts and notification preferences
#   - pigeon.db:   notification history (in data directory)
#
# Example config.toml:
#
#   [general]
#   check_interval_seconds = 300
#   priority_only = false
#
#   [accounts.work]
#   provider = "imap"
#   mailbox = "me@example.com"
#   imap_host = "imap.example.com"
#
#   [accounts.personal]
#   provider = "google"
#   mailbox = "me@gmail.com"
# =============================================================================

import logging
import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import tomli_w  # For writing TOML (tomllib is read-only)

from pigeon.core import Account, ProviderKind
from pigeon.events import Signal

logger = logging.getLogger(__name__)


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "pigeon"


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for Pigeon.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/pigeon/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def get_xdg_data_home() -> Path:
    """
    Returns the XDG data directory for Pigeon.

    Respects $XDG_DATA_HOME if set, otherwise uses ~/.local/share/pigeon/
    This is where the notification history database lives.
    """
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        base = Path(xdg_data)
    else:
        base = Path.home() / ".local" / "share"
    return base / APP_NAME


# =============================================================================
# Configuration Data Structures
# =============================================================================

# Bounds for the poll interval (seconds)
MIN_CHECK_INTERVAL = 60
MAX_CHECK_INTERVAL = 1800


@dataclass
class NotifyOptions:
    """
    User preferences that shape polling and notifications.

    Attributes:
        priority_only: Only ask REST providers for important/focused mail.
        check_interval_seconds: Seconds between polls (60-1800).
        persistent_notifications: Keep notifications until dismissed.
        play_sound: Play a sound for each new message.
        use_mail_client: Open the default mail client instead of a web link.
    """
    priority_only: bool = False
    check_interval_seconds: int = 300
    persistent_notifications: bool = False
    play_sound: bool = False
    use_mail_client: bool = False

    def __post_init__(self) -> None:
        self.check_interval_seconds = clamp_interval(self.check_interval_seconds)


def clamp_interval(seconds: int) -> int:
    """Force a poll interval into the supported range."""
    return max(MIN_CHECK_INTERVAL, min(MAX_CHECK_INTERVAL, int(seconds)))


@dataclass
class Config:
    """
    Main configuration container for Pigeon.

    Attributes:
        options: Notification preferences ([general] table).
        accounts: Configured accounts, keyed by name.

    Usage:
        >>> config = Config.load()
        >>> config.accounts["work"].provider
        <ProviderKind.IMAP: 'imap'>
    """
    options: NotifyOptions = field(default_factory=NotifyOptions)
    accounts: dict[str, Account] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    @staticmethod
    def database_path() -> Path:
        """Returns the path to the notification history database."""
        return get_xdg_data_home() / "pigeon.db"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from a TOML file.

        Args:
            path: Config file to read. Defaults to the XDG location.

        Returns:
            Loaded Config object, or defaults if the file doesn't exist.

        Raises:
            ConfigError: If the file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        if not config_path.exists():
            logger.info(f"No config file at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file: {e}") from e

        return cls._from_dict(data)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to a TOML file, creating its directory."""
        config_path = path or self.config_file_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).

        The provider string of each account is resolved to a ProviderKind
        here, once, so nothing downstream dispatches on strings.
        """
        config = cls()

        general = data.get("general", {})
        config.options = NotifyOptions(
            priority_only=general.get("priority_only", False),
            check_interval_seconds=general.get("check_interval_seconds", 300),
            persistent_notifications=general.get("persistent_notifications", False),
            play_sound=general.get("play_sound", False),
            use_mail_client=general.get("use_mail_client", False),
        )

        # Accounts - each key under [accounts] is an account name
        for name, acct_data in data.get("accounts", {}).items():
            provider_name = acct_data.get("provider", "imap")
            try:
                provider = ProviderKind(provider_name)
            except ValueError as e:
                raise ConfigError(
                    f"Account '{name}': unknown provider '{provider_name}' "
                    f"(expected one of: {', '.join(k.value for k in ProviderKind)})"
                ) from e

            mailbox = acct_data.get("mailbox", "")
            if not mailbox:
                raise ConfigError(f"Account '{name}': 'mailbox' is required")

            account = Account(
                name=name,
                mailbox=mailbox,
                provider=provider,
                imap_host=acct_data.get("imap_host", ""),
                imap_port=acct_data.get("imap_port", 993),
                imap_tls=acct_data.get("imap_tls", True),
                username=acct_data.get("username", ""),
                enabled=acct_data.get("enabled", True),
            )
            if provider is ProviderKind.IMAP and not account.imap_host:
                raise ConfigError(f"Account '{name}': 'imap_host' is required for IMAP")

            config.accounts[name] = account

        return config

    def _to_dict(self) -> dict[str, Any]:
        """Convert Config to a dictionary for TOML serialization."""
        data: dict[str, Any] = {
            "general": {
                "priority_only": self.options.priority_only,
                "check_interval_seconds": self.options.check_interval_seconds,
                "persistent_notifications": self.options.persistent_notifications,
                "play_sound": self.options.play_sound,
                "use_mail_client": self.options.use_mail_client,
            },
            "accounts": {},
        }

        for name, account in self.accounts.items():
            entry: dict[str, Any] = {
                "provider": account.provider.value,
                "mailbox": account.mailbox,
                "enabled": account.enabled,
            }
            if account.provider is ProviderKind.IMAP:
                entry.update({
                    "imap_host": account.imap_host,
                    "imap_port": account.imap_port,
                    "imap_tls": account.imap_tls,
                    "username": account.username,
                })
            data["accounts"][name] = entry

        return data


# =============================================================================
# Runtime Settings
# =============================================================================

class Settings:
    """
    Live view of NotifyOptions with change notification.

    Usage:
        >>> settings = Settings(config.options)
        >>> handle = settings.changed.connect(on_changed)
        >>> settings.update(check_interval_seconds=120)   # on_changed("check_interval_seconds")
        >>> handle.unsubscribe()
    """

    def __init__(self, options: NotifyOptions | None = None) -> None:
        self._options = options or NotifyOptions()
        self.changed: Signal[str] = Signal("settings-changed")

    @property
    def options(self) -> NotifyOptions:
        """Current options. Treat as read-only; use update() to change."""
        return self._options

    def update(self, **changes: Any) -> None:
        """
        Change one or more options, emitting `changed` once per modified key.

        Raises:
            ConfigError: If a key is not a known option.
        """
        known = {f.name for f in fields(NotifyOptions)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}")

        old = self._options
        self._options = replace(old, **changes)

        for key in changes:
            if getattr(old, key) != getattr(self._options, key):
                logger.debug(f"Setting {key} changed to {getattr(self._options, key)!r}")
                self.changed.emit(key)


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading or parsing configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """
    Print all XDG paths for debugging.
    Useful for users wondering where their config/data is stored.
    """
    print(f"Config:  {get_xdg_config_home()}")
    print(f"Data:    {get_xdg_data_home()}")
    print()
    print(f"Config file:  {Config.config_file_path()}")
    print(f"Database:     {Config.database_path()}")
