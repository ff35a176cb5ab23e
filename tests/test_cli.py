"""Tests for CLI commands.

These tests verify that CLI commands are registered, parse their arguments,
and route to the client.
"""

import json
from datetime import date

import pytest
import responses

from ged_client.runner.main import create_cli, group_filters, main

BASE_URL = "http://ged.test/api/"


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Config file pointing at the mocked GED service."""
    for name in ("GED_URL", "GED_API_KEY", "GED_IDENTITY", "GED_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(f"ged:\n  base_url: {BASE_URL}\n  api_key: cli-key\n  identity: cli\n")
    return path


def _add_handshake():
    responses.add(responses.GET, f"{BASE_URL}users/cli", json={"token": "cli-token"}, status=200)


class TestCLICommandRegistry:
    """Tests for CLI command registration."""

    def test_all_commands_registered(self):
        parser = create_cli()

        subparsers_action = None
        for action in parser._actions:
            if action.dest == "command":
                subparsers_action = action
                break

        assert subparsers_action is not None
        commands = set(subparsers_action.choices.keys())
        assert commands == {
            "init-config",
            "connect",
            "profiles",
            "doctypes",
            "metadata",
            "documents",
            "search",
            "download",
            "upload",
            "url",
        }

    def test_documents_filters(self):
        args = create_cli().parse_args(
            ["documents", "HR", "--filter", "STATUS=A", "--filter", "STATUS=B", "--with-metadata"]
        )
        assert args.filters == [("STATUS", "A"), ("STATUS", "B")]
        assert args.with_metadata is True

    def test_search_dates(self):
        args = create_cli().parse_args(
            ["search", "HR", "--from", "2024-01-01", "--to", "2024-01-31", "--with-deleted"]
        )
        assert args.from_date == date(2024, 1, 1)
        assert args.to_date == date(2024, 1, 31)
        assert args.with_deleted is True

    def test_bad_filter_rejected(self):
        with pytest.raises(SystemExit):
            create_cli().parse_args(["documents", "HR", "--filter", "STATUS"])

    def test_upload_defaults(self):
        args = create_cli().parse_args(["upload", "a.pdf", "HR", "Payslip"])
        assert args.mime_type == "application/pdf"
        assert args.extension == "pdf"
        assert args.keep is False
        assert args.metadata == []


class TestGroupFilters:
    def test_repeated_keys_become_lists(self):
        assert group_filters([("S", "A"), ("S", "B"), ("T", "C"), ("S", "D")]) == {
            "S": ["A", "B", "D"],
            "T": "C",
        }

    def test_empty(self):
        assert group_filters([]) == {}


class TestMain:
    """Tests for main() routing."""

    def test_no_command(self):
        assert main([]) == 1

    def test_init_config(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"

        assert main(["-c", str(path), "init-config"]) == 0
        assert path.exists()
        # Refuses to overwrite
        assert main(["-c", str(path), "init-config"]) == 1

    def test_invalid_config(self, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("GED_API_KEY", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("ged:\n  base_url: http://ged.test/api/\n")

        assert main(["-c", str(path), "profiles"]) == 1
        assert "api_key" in capsys.readouterr().out

    @responses.activate
    def test_connect(self, config_file, capsys):
        _add_handshake()

        assert main(["-c", str(config_file), "connect"]) == 0
        assert "cli" in capsys.readouterr().out

    @responses.activate
    def test_connect_failure(self, config_file, capsys):
        responses.add(responses.GET, f"{BASE_URL}users/cli", status=403)

        assert main(["-c", str(config_file), "connect"]) == 1

    @responses.activate
    def test_profiles_prints_json(self, config_file, capsys):
        _add_handshake()
        responses.add(
            responses.GET, f"{BASE_URL}profiles", json=[{"displayName": "ops"}], status=200
        )

        assert main(["-c", str(config_file), "profiles"]) == 0
        assert json.loads(capsys.readouterr().out) == [{"displayName": "ops"}]

    @responses.activate
    def test_failed_query_exit_code(self, config_file):
        _add_handshake()
        responses.add(responses.GET, f"{BASE_URL}profiles", status=500)

        assert main(["-c", str(config_file), "profiles"]) == 1

    @responses.activate
    def test_url(self, config_file, capsys):
        _add_handshake()

        assert main(["-c", str(config_file), "url", "d-1"]) == 0
        assert capsys.readouterr().out.strip() == (
            f"{BASE_URL}version/downloadVersion?documentId=d-1&token=cli-token"
        )

    @responses.activate
    def test_download_writes_file(self, config_file, tmp_path):
        _add_handshake()
        responses.add(
            responses.GET,
            f"{BASE_URL}version/downloadVersion",
            body=b"%PDF",
            status=200,
            headers={"Content-Disposition": 'attachment; filename="../escape.pdf"'},
        )
        out_dir = tmp_path / "out"

        assert main(["-c", str(config_file), "download", "d-1", "-o", str(out_dir)]) == 0
        assert (out_dir / "escape.pdf").read_bytes() == b"%PDF"

    @responses.activate
    def test_upload_keep(self, config_file, sample_pdf):
        _add_handshake()
        responses.add(
            responses.POST, f"{BASE_URL}document/quick-insert", json={"status": "ok"}, status=200
        )

        exit_code = main([
            "-c", str(config_file),
            "upload", str(sample_pdf), "HR", "Payslip",
            "--metadata", "EMPLOYEE_ID=42",
            "--keep",
        ])

        assert exit_code == 0
        assert sample_pdf.exists()
        body = responses.calls[1].request.body
        assert b'"EMPLOYEE_ID": {"value": "42", "label": "42"}' in body

    def test_upload_missing_file(self, config_file, tmp_path):
        assert main([
            "-c", str(config_file), "upload", str(tmp_path / "nope.pdf"), "HR", "Payslip"
        ]) == 1
