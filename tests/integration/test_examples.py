"""Runs the example suites shipped in examples/."""

from pathlib import Path

import pytest

from e2ekit.cli import load_target, main
from e2ekit.env import EXIT_OK, MemoryReporter, Outcome, UnitKind

pytestmark = pytest.mark.integration

BASICS = Path(__file__).resolve().parents[2] / "examples" / "01_basics"


@pytest.fixture
def basics_on_path(monkeypatch):
    monkeypatch.syspath_prepend(str(BASICS))
    monkeypatch.chdir(BASICS)


class TestDeploymentSuite:
    def test_runs_clean(self, basics_on_path):
        env = load_target("deployment_suite:make_env")
        memory = MemoryReporter()

        result = env.execute(memory)

        assert result.exit_code == EXIT_OK
        assert result.find("replicas ready").passed
        large = result.find("large payload")
        assert large.outcome is Outcome.SKIPPED
        assert "exceeds the limit" in large.reason
        assert env.config.client.namespaces == set()
        assert env.config.client.deployments == {}

    def test_cli_with_config_file(self, basics_on_path, capsys):
        assert main(["deployment_suite:env", "--config", "e2e.yaml"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "PASS replicas ready" in out

    def test_dry_run(self, basics_on_path):
        env = load_target("deployment_suite:make_env")
        env.config.with_dry_run_mode()
        result = env.execute()
        assert result.exit_code == EXIT_OK
        assert all(u.skipped for u in result.by_kind(UnitKind.ASSESSMENT))
