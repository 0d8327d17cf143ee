"""Tests for configuration loading."""

import tomllib

import pytest

from music_storefront.core.config import (
    ENV_OVERRIDES,
    Config,
    apply_env_overrides,
    create_default_config,
    get_config_path,
    load_config,
    parse_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)


def test_default_config_parses():
    config = parse_config(tomllib.loads(create_default_config()))

    assert config.preview.duration == 30.0
    assert config.preview.fade_in == 2.0
    assert config.preview.fade_out == 3.0
    assert config.preview.waveform_points == 200
    assert config.purchase.poll_interval == 5.0
    assert config.purchase.max_attempts == 24
    assert config.coinbase.api_version == "2018-03-22"
    assert config.storage.url_expiry == 300
    assert config.tracks[0]["file_key"] == "1_Orion.mp3"


def test_partial_sections_keep_defaults():
    config = parse_config({"preview": {"duration": 15.0}, "purchase": {"max_attempts": 3}})

    assert config.preview.duration == 15.0
    assert config.preview.fade_out == 3.0
    assert config.purchase.max_attempts == 3
    assert config.purchase.poll_interval == 5.0


def test_invalid_preview_falls_back_to_defaults():
    config = parse_config({"preview": {"duration": 4.0, "fade_in": 2.0, "fade_out": 3.0}})

    assert config.preview.duration == 30.0


def test_logging_level_normalized():
    config = parse_config({"logging": {"level": "debug", "log_file": "~/storefront.log"}})

    assert config.logging.level == "DEBUG"
    assert not config.logging.log_file.startswith("~")


def test_env_overrides_secrets(monkeypatch):
    monkeypatch.setenv("COINBASE_COMMERCE_API_KEY", "cc-key")
    monkeypatch.setenv("R2_BUCKET_NAME", "music")

    config = apply_env_overrides(Config())

    assert config.coinbase.api_key == "cc-key"
    assert config.storage.bucket_name == "music"
    assert config.storage.missing_settings() == [
        "R2_ENDPOINT",
        "R2_ACCESS_KEY_ID",
        "R2_SECRET_ACCESS_KEY",
    ]


def test_explicit_config_path(monkeypatch, tmp_path):
    path = tmp_path / "custom.toml"
    monkeypatch.setenv("STOREFRONT_CONFIG", str(path))

    assert get_config_path() == path


def test_load_config_creates_default(monkeypatch, tmp_path):
    path = tmp_path / "fresh" / "config.toml"
    monkeypatch.setenv("STOREFRONT_CONFIG", str(path))

    config = load_config()

    assert path.exists()
    assert config.store.title == "Cosmosonic"
    assert len(config.tracks) == 1


def test_load_config_reads_file_and_env(monkeypatch, tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[store]\ntitle = "Night Shift"\n\n'
        '[[tracks]]\nid = "7"\ntitle = "Vega"\nartist = "A"\nprice = "2.50"\nfile_key = "7_Vega.mp3"\n'
    )
    monkeypatch.setenv("STOREFRONT_CONFIG", str(path))
    monkeypatch.setenv("STOREFRONT_API_URL", "https://store.example/api")

    config = load_config()

    assert config.store.title == "Night Shift"
    assert config.tracks == [
        {"id": "7", "title": "Vega", "artist": "A", "price": "2.50", "file_key": "7_Vega.mp3"}
    ]
    assert config.purchase.api_base_url == "https://store.example/api"


def test_broken_toml_uses_defaults(monkeypatch, tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[store\ntitle =")
    monkeypatch.setenv("STOREFRONT_CONFIG", str(path))

    assert load_config().store.title == "Cosmosonic"
