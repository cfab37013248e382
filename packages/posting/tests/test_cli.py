"""Tests for the command line entry point."""

import json
import sys
from uuid import uuid4

import pytest
import structlog

from ledger_posting import cli
from ledger_posting.chart_templates import DEFAULT_CHART


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep log lines off stdout so command output parses as JSON."""
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))
    yield
    structlog.reset_defaults()


class TestCli:
    """Tests for cli.main."""

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_static_flag(self):
        args = cli.build_parser().parse_args(["generate", str(uuid4()), "--static"])

        assert args.command == "generate"
        assert args.static is True

    @pytest.mark.asyncio
    async def test_init_db(self):
        assert await cli.main(["init-db"]) == 0

    @pytest.mark.asyncio
    async def test_seed_chart(self, capsys):
        tenant_id = uuid4()

        assert await cli.main(["seed-chart", str(tenant_id)]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output == {"tenant_id": str(tenant_id), "created": len(DEFAULT_CHART)}

    @pytest.mark.asyncio
    async def test_generate_unknown_document(self, capsys):
        document_id = uuid4()

        assert await cli.main(["generate", str(document_id), "--static"]) == 1

        output = json.loads(capsys.readouterr().out)
        assert output["ok"] is False
        assert output["error"]["code"] == "document_not_found"

    @pytest.mark.asyncio
    async def test_summary_unknown_document(self, capsys):
        assert await cli.main(["summary", str(uuid4())]) == 1

        output = json.loads(capsys.readouterr().out)
        assert output["error"]["code"] == "document_not_found"
