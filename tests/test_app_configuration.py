from pathlib import Path

import pytest

from attachguard.configuration.app_configuration import AppConfig


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_path.write_text(
        "\n".join([
            "database:",
            f"  path: {tmp_path / 'blocker.db'}",
            "cache:",
            "  redis_url: redis://localhost:6379/0",
            "  ttl_seconds: 120",
            "attachment_blocker:",
            "  dm_notifications: false",
            "  notice_color: 0x00FF00",
            "  opener_cog_name: TempVoice",
        ]),
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.database_path == (tmp_path / "blocker.db").resolve()
    assert config.redis_url == "redis://localhost:6379/0"
    assert config.cache_ttl_seconds == 120
    assert config.dm_notifications is False
    assert config.notice_color == 0x00FF00
    assert config.opener_cog_name == "TempVoice"
    assert config.get("cache")["ttl_seconds"] == 120


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.database_path.name == "app.db"
    assert config.redis_url == ""
    assert config.cache_ttl_seconds == 300
    assert config.dm_notifications is True
    assert config.notice_color == 0xFF4444
    assert config.opener_cog_name == "TempVC"


def test_app_config_non_mapping_yaml_uses_defaults(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    config = AppConfig(config_path)
    assert config.data == {}


def test_app_config_bad_values_fall_back(config_path: Path) -> None:
    config_path.write_text(
        "cache:\n  ttl_seconds: soon\nattachment_blocker:\n  notice_color: '#ff0000'\n",
        encoding="utf-8",
    )
    config = AppConfig(config_path)
    assert config.cache_ttl_seconds == 300
    assert config.notice_color == 0xFF4444


def test_app_config_hex_string_color(config_path: Path) -> None:
    config_path.write_text("attachment_blocker:\n  notice_color: '0xff8800'\n", encoding="utf-8")
    assert AppConfig(config_path).notice_color == 0xFF8800


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("cache:\n  ttl_seconds: 10\n", encoding="utf-8")
    config = AppConfig(config_path)
    config_path.write_text("cache:\n  ttl_seconds: 20\n", encoding="utf-8")
    config.reload()
    assert config.cache_ttl_seconds == 20
