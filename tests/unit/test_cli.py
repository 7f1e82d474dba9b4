"""Tests for the command-line shipper."""

import io

import pytest

from log_shipper.cli import build_parser, config_from_args, ship
from log_shipper.config import ProbeConfig, ShipperConfig, WriterConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("NODE_URL", "INDEX", "INDEX_PREFIX", "FLUSH_INTERVAL", "ENSURE_TEMPLATE"):
        monkeypatch.delenv(f"LOG_SHIPPER_{name}", raising=False)


class TestArguments:
    """Tests for argument parsing."""

    def test_defaults_come_from_config(self) -> None:
        config = config_from_args(build_parser().parse_args([]))

        assert config == ShipperConfig.from_env()

    def test_overrides(self) -> None:
        args = build_parser().parse_args(
            [
                "--node-url",
                "http://es:9200",
                "--index-prefix",
                "svc",
                "--flush-interval",
                "0.5",
                "--no-template",
            ]
        )

        config = config_from_args(args)

        assert config.node_url == "http://es:9200"
        assert config.index_prefix == "svc"
        assert config.writer.flush_interval == 0.5
        assert not config.probe.ensure_template

    def test_invalid_interval_is_rejected(self) -> None:
        args = build_parser().parse_args(["--flush-interval", "0"])

        with pytest.raises(ValueError):
            config_from_args(args)


class TestShip:
    """Tests for stream shipping against an unreachable node."""

    @pytest.mark.asyncio
    async def test_unreachable_node_reports_unsent(self, capsys: pytest.CaptureFixture[str]) -> None:
        config = ShipperConfig(
            node_url="http://127.0.0.1:9",
            writer=WriterConfig(flush_interval=0.05),
            probe=ProbeConfig(max_retries=0),
        )

        unsent = await ship(config, io.StringIO("one\n\ntwo\n"))

        assert unsent == 2
        assert "flush error" in capsys.readouterr().err
