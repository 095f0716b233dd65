"""Tests for the convoy CLI."""

import sys
from unittest.mock import patch

import pytest

from convoy.cli import build_parser, main, run

CLUSTER_YAML = """\
name: demo
hosts:
  - address: 10.0.0.1
    role: master
    region: eu
  - address: 10.0.0.2
    role: worker
    region: eu
addons:
  kured:
    enabled: true
    period: 1h
"""


@pytest.fixture(autouse=True)
def quiet_environment(monkeypatch):
    """Keep .env files and host logging settings out of CLI runs."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    with patch("convoy.config.load_dotenv"), patch("convoy.cli.setup_logging"):
        yield


@pytest.fixture
def cluster_file(tmp_path):
    def _write(content: str = CLUSTER_YAML):
        path = tmp_path / "cluster.yml"
        path.write_text(content)
        return str(path)

    return _write


def _run(*argv: str) -> int:
    return run(build_parser().parse_args(list(argv)))


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_hosts_requires_file(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["hosts"])

    def test_verbose_flag(self):
        args = build_parser().parse_args(["-v", "addons"])
        assert args.verbose is True
        assert args.cluster_file is None

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "convoy" in capsys.readouterr().out


class TestHostsCommand:
    def test_hosts(self, cluster_file, capsys):
        assert _run("hosts", cluster_file()) == 0

        output = capsys.readouterr().out
        assert "DNS replicas: 2" in output
        assert "Regions: eu" in output

    def test_invalid_cluster(self, cluster_file, capsys):
        path = cluster_file("hosts:\n  - address: 10.0.0.1\n    role: worker\n")

        assert _run("hosts", path) == 1
        assert "Invalid cluster configuration" in capsys.readouterr().out


class TestAddonsCommand:
    def test_list_addons(self, capsys):
        assert _run("addons") == 0

        output = capsys.readouterr().out
        assert "ingress-nginx" in output
        assert "kured" in output

    def test_valid_addon_config(self, cluster_file, capsys):
        assert _run("addons", cluster_file()) == 0
        assert "Addon configuration is valid" in capsys.readouterr().out

    def test_addon_violation(self, cluster_file, capsys):
        path = cluster_file(CLUSTER_YAML.replace("period: 1h", "period: sometime"))

        assert _run("addons", path) == 1
        assert "addons.kured" in capsys.readouterr().out

    def test_unknown_addon(self, cluster_file, capsys):
        path = cluster_file(CLUSTER_YAML + "  no-such-addon:\n    enabled: true\n")

        assert _run("addons", path) == 1
        assert "addons.no-such-addon" in capsys.readouterr().out


class TestMain:
    def test_missing_file_exits_with_error(self, tmp_path, capsys):
        argv = ["convoy", "hosts", str(tmp_path / "missing.yml")]

        with patch.object(sys, "argv", argv), pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert "Configuration file not found" in capsys.readouterr().out

    def test_success_exit_code(self, cluster_file):
        with patch.object(sys, "argv", ["convoy", "hosts", cluster_file()]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
