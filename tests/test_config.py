# =============================================================================
# Configuration Tests
# =============================================================================

import pytest

from pigeon.config import (
    MAX_CHECK_INTERVAL,
    MIN_CHECK_INTERVAL,
    Config,
    ConfigError,
    NotifyOptions,
    Settings,
    get_xdg_config_home,
    get_xdg_data_home,
)
from pigeon.core import Account, ProviderKind

SAMPLE = """
[general]
priority_only = true
check_interval_seconds = 120
play_sound = true

[accounts.personal]
provider = "google"
mailbox = "me@gmail.com"

[accounts.work]
provider = "imap"
mailbox = "me@work.example"
imap_host = "imap.work.example"
imap_port = 143
imap_tls = false
username = "me"

[accounts.old]
provider = "microsoft"
mailbox = "me@outlook.com"
enabled = false
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(SAMPLE)
    return path


class TestPaths:
    def test_xdg_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

        assert get_xdg_config_home() == tmp_path / "cfg" / "pigeon"
        assert get_xdg_data_home() == tmp_path / "data" / "pigeon"
        assert Config.database_path() == tmp_path / "data" / "pigeon" / "pigeon.db"


class TestLoad:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = Config.load(tmp_path / "nope.toml")

        assert config.accounts == {}
        assert config.options == NotifyOptions()
        assert config.options.check_interval_seconds == 300

    def test_sample(self, config_file):
        config = Config.load(config_file)

        assert config.options.priority_only is True
        assert config.options.check_interval_seconds == 120
        assert config.options.play_sound is True
        assert config.options.use_mail_client is False

        work = config.accounts["work"]
        assert work.provider is ProviderKind.IMAP
        assert (work.imap_host, work.imap_port, work.imap_tls) == ("imap.work.example", 143, False)
        assert work.login == "me"
        assert config.accounts["personal"].provider is ProviderKind.GOOGLE
        assert config.accounts["old"].enabled is False

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[general\n")

        with pytest.raises(ConfigError, match="Invalid config"):
            Config.load(path)

    def test_unknown_provider(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[accounts.x]\nprovider = "yahoo"\nmailbox = "x@y.z"\n')

        with pytest.raises(ConfigError, match="unknown provider 'yahoo'"):
            Config.load(path)

    def test_mailbox_required(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[accounts.x]\nprovider = "google"\n')

        with pytest.raises(ConfigError, match="'mailbox' is required"):
            Config.load(path)

    def test_imap_host_required(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[accounts.x]\nmailbox = "x@y.z"\n')

        with pytest.raises(ConfigError, match="imap_host"):
            Config.load(path)

    @pytest.mark.parametrize("value, expected", [
        (5, MIN_CHECK_INTERVAL),
        (60, 60),
        (900, 900),
        (99999, MAX_CHECK_INTERVAL),
    ])
    def test_interval_is_clamped(self, tmp_path, value, expected):
        path = tmp_path / "config.toml"
        path.write_text(f"[general]\ncheck_interval_seconds = {value}\n")

        assert Config.load(path).options.check_interval_seconds == expected


class TestSave:
    def test_save_and_reload(self, config_file, tmp_path):
        original = Config.load(config_file)
        target = tmp_path / "nested" / "config.toml"

        original.save(target)

        assert Config.load(target) == original

    def test_rest_accounts_omit_imap_fields(self, tmp_path):
        config = Config(accounts={
            "g": Account(name="g", mailbox="g@gmail.com", provider=ProviderKind.GOOGLE),
        })
        path = tmp_path / "config.toml"

        config.save(path)

        assert "imap_host" not in path.read_text()


class TestSettings:
    def test_update_emits_changed_keys(self):
        settings = Settings()
        changed = []
        settings.changed.connect(changed.append)

        settings.update(check_interval_seconds=120, play_sound=False)

        assert changed == ["check_interval_seconds"]
        assert settings.options.check_interval_seconds == 120

    def test_update_clamps(self):
        settings = Settings()

        settings.update(check_interval_seconds=1)

        assert settings.options.check_interval_seconds == MIN_CHECK_INTERVAL

    def test_no_emit_when_clamped_value_is_unchanged(self):
        settings = Settings(NotifyOptions(check_interval_seconds=60))
        changed = []
        settings.changed.connect(changed.append)

        settings.update(check_interval_seconds=10)

        assert changed == []

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown option"):
            Settings().update(refresh_rate=10)

    def test_unsubscribed_handler_not_called(self):
        settings = Settings()
        changed = []
        handle = settings.changed.connect(changed.append)
        handle.unsubscribe()

        settings.update(priority_only=True)

        assert changed == []
