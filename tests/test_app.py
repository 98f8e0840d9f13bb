"""
Tests for the command-line entry point.
"""

import json

import pytest

from gityap import __version__, app
from tests.conftest import SESSION, user_payload


@pytest.fixture
def cli(monkeypatch, tmp_path, reconciler):
    """Run ``main`` against the fake-backed reconciler, from an empty directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(app, "build_reconciler", lambda args: reconciler)
    return app.main


class TestMain:
    """Argument handling and output."""

    def test_version(self, capsys):
        app.main(["--version"])

        assert capsys.readouterr().out.strip() == __version__

    def test_no_command_prints_help(self, capsys):
        app.main([])

        assert "usage: gityap" in capsys.readouterr().out

    def test_compare(self, cli, fake, capsys):
        fake.add("/users/newbie", user_payload("newbie"))
        fake.add("/search/commits", {"total_count": 0})

        cli(["compare", "--github", "newbie", "--channel", "bigyap", "--session", SESSION])

        data = json.loads(capsys.readouterr().out)
        assert data["comparison"]["winner"] == "right"
        assert data["right"]["score"] == 92

    def test_session_from_environment(self, cli, fake, capsys, monkeypatch):
        fake.add("/users/newbie", user_payload("newbie"))
        fake.add("/search/commits", {"total_count": 0})
        monkeypatch.setenv("GITYAP_SESSION", SESSION)

        cli(["compare", "--github", "newbie", "--channel", "quiet"])

        assert json.loads(capsys.readouterr().out)["comparison"]["winner"] == "right"

    def test_typed_error_exits_nonzero(self, cli, fake, capsys):
        fake.add("/users/ghost", {"message": "Not Found"}, status=404)

        with pytest.raises(SystemExit) as exc_info:
            cli(["compare", "--github", "ghost", "--channel", "bigyap", "--session", SESSION])

        assert exc_info.value.code == 1
        assert capsys.readouterr().err.strip() == 'Error: GitHub user "ghost" not found'

    def test_match_without_history(self, cli, capsys):
        cli(["match", "--channel", "bigyap"])

        assert json.loads(capsys.readouterr().out) == {"handle": None, "reason": None}

    def test_recent_limit(self, cli, fake, capsys):
        fake.add("/search/commits", {"total_count": 1})
        for login in ("one", "two", "three"):
            fake.add(f"/users/{login}", user_payload(login))
            cli(["compare", "--github", login, "--channel", "quiet", "--session", SESSION])
        capsys.readouterr()

        cli(["recent", "--limit", "2"])

        recent = json.loads(capsys.readouterr().out)
        assert len(recent) == 2


class TestBuildReconciler:
    """Wiring from settings and flags."""

    def test_leaderboard_with_memory_store(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        channels = tmp_path / "channels.json"
        channels.write_text(json.dumps({"channels": {}}), encoding="utf-8")

        app.main(["--store", "memory", "--channels", str(channels), "leaderboard"])

        board = json.loads(capsys.readouterr().out)
        assert board == {"code": [], "channels": [], "channelsByParticipants": [], "comparisonsCount": 0}

    def test_flags_override_settings(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GITYAP_STORE", "memory")
        args = app.build_parser().parse_args(
            ["--db", str(tmp_path / "g.db"), "--store", "sql", "--timeout", "3", "leaderboard"]
        )

        rec = app.build_reconciler(args)

        assert rec.timeout == 3.0
        assert (tmp_path / "g.db").exists()
