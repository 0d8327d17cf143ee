"""Tests for CLI commands that fail before touching audio or the network."""

from decimal import Decimal
from unittest.mock import patch

from music_storefront import cli
from music_storefront.core.config import Config
from music_storefront.domain.catalog import Track

ORION = Track(
    id="1",
    title="Orion",
    artist="Julio César THOR",
    price=Decimal("1.00"),
    file_key="1_Orion.mp3",
    audio_preview_source="media/orion.mp3",
)


def test_preview_without_mpv_fails_fast():
    with patch.object(cli, "check_mpv_available", return_value=False), patch.object(
        cli, "_play_preview"
    ) as play:
        assert cli.run_preview(Config(), ORION) == 1

    play.assert_not_called()


def test_preview_of_track_without_clip_fails():
    assert cli.run_preview(Config(), ORION._replace(audio_preview_source=None)) == 1


def test_parser_knows_every_command():
    parser = cli.build_parser()

    assert parser.parse_args(["buy", "1", "--wait"]).wait is True
    assert parser.parse_args(["open", "/success"]).path == "/success"
    assert parser.parse_args(["serve", "--port", "9000"]).port == 9000
    assert parser.parse_args([]).subcommand is None
