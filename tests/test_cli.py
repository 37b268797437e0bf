import json

import pytest

from conftest import FakeContentfulClient, make_entry, make_link

from contentful_ops import cli
from contentful_ops.api.errors import AuthenticationError


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CONTENTFUL_MANAGEMENT_TOKEN", "CFPAT-abc")
    monkeypatch.setenv("SPACE_ID_FR_FR", "frspace")
    monkeypatch.setenv("ENV_FR_FR", "master")
    monkeypatch.setattr(cli, "load_env", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    return tmp_path


def use_client(monkeypatch, client):
    created = []

    def factory(*args, **kwargs):
        created.append((args, kwargs))
        return client

    monkeypatch.setattr(cli, "ContentfulManagementClient", factory)
    return created


def test_parser_accepts_every_flag():
    args = cli.build_parser().parse_args([
        "clean-and-publish", "--dry-run", "--max-entries", "50", "--batch-size", "25",
        "--content-type", "page", "--space-id", "s1", "--env-id", "staging", "--context", "uk",
    ])

    assert args.command == "clean-and-publish"
    assert args.dry_run
    assert args.max_entries == 50
    assert args.batch_size == 25
    assert args.content_type == "page"
    assert args.space_id == "s1"
    assert args.env_id == "staging"
    assert args.context == "uk"


def test_unknown_command_is_rejected():
    with pytest.raises(SystemExit) as exc_info:
        cli.build_parser().parse_args(["explode"])
    assert exc_info.value.code == 2


def test_scan_dry_run_end_to_end(cli_env, monkeypatch, capsys):
    client = FakeContentfulClient(entries=[make_entry("abc123", {"ref": {"en-US": make_link("gone")}})])
    created = use_client(monkeypatch, client)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["scan", "--dry-run", "--report-dir", str(cli_env), "--env-id", "staging"])

    assert exc_info.value.code == 0
    assert created[0][0] == ("CFPAT-abc", "frspace", "staging")
    out = capsys.readouterr().out
    assert "DRY_RUN" in out
    assert "broken_links_found: 1" in out

    reports = list(cli_env.glob("validation-report-fr-*.json"))
    assert len(reports) == 1
    assert json.loads(reports[0].read_text())["dryRun"] is True


def test_missing_credentials_exit_1(cli_env, monkeypatch, capsys):
    monkeypatch.delenv("CONTENTFUL_MANAGEMENT_TOKEN")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["scan"])

    assert exc_info.value.code == 1
    assert "CONTENTFUL_MANAGEMENT_TOKEN" in capsys.readouterr().out


def test_connection_failure_is_fatal(cli_env, monkeypatch):
    client = FakeContentfulClient()

    def refuse():
        raise AuthenticationError("Access token invalid", status=401)

    client.connect = refuse
    use_client(monkeypatch, client)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["scan", "--report-dir", str(cli_env)])

    assert exc_info.value.code == 1
    assert client.calls_to("get_entries") == []


def test_aborted_run_exits_1(cli_env, monkeypatch):
    client = FakeContentfulClient(entries=[make_entry("e1", {"title": {"en-US": "x"}})])
    client.publish_errors["e1"] = AuthenticationError("Token revoked", status=401)
    use_client(monkeypatch, client)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["publish-entries-only", "--report-dir", str(cli_env)])

    assert exc_info.value.code == 1


def test_unexpected_failure_exits_1(cli_env, monkeypatch):
    client = FakeContentfulClient()

    def explode(query=None):
        raise RuntimeError("unexpected")

    client.get_entries = explode
    use_client(monkeypatch, client)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["scan", "--report-dir", str(cli_env)])

    assert exc_info.value.code == 1


def test_live_destructive_run_prints_warning(cli_env, monkeypatch, capsys):
    use_client(monkeypatch, FakeContentfulClient())

    with pytest.raises(SystemExit):
        cli.main(["delete-drafts", "--report-dir", str(cli_env)])

    assert "WARNING: LIVE RUN" in capsys.readouterr().out


def test_validate_rules_with_broken_file_exits_1(cli_env, monkeypatch, capsys):
    rules_path = cli_env / "rules.json"
    rules_path.write_text(json.dumps({"deletionRules": [{"id": "x"}]}))
    use_client(monkeypatch, FakeContentfulClient())

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["validate-rules", "--deletion-rules", str(rules_path), "--report-dir", str(cli_env)])

    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "WARNING: LIVE RUN" not in out
    assert "rule_problems: 3" in out
