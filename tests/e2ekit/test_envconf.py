"""
Tests for the shared environment configuration.

Tests key EnvConfig features including:
- Fluent setters and getters
- Random namespace generation
- Read-only guard during parallel dispatch
- Loading from YAML files and flags
"""

import pytest

from e2ekit.env.matcher import Selection
from e2ekit.envconf import EnvConfig, random_name
from e2ekit.exceptions import ConfigError, SelectionError

pytestmark = pytest.mark.unit


class TestRandomName:
    def test_length_and_prefix(self):
        name = random_name("testns", 16)
        assert len(name) == 16
        assert name.startswith("testns-")

    def test_names_differ(self):
        assert random_name("ns", 32) != random_name("ns", 32)

    def test_long_prefix_returned_as_is(self):
        assert random_name("a-very-long-prefix", 5) == "a-very-long-prefix"

    def test_zero_length_uses_default(self):
        assert len(random_name("ns", 0)) == 32


class TestSetters:
    def test_defaults(self):
        cfg = EnvConfig()
        assert cfg.client is None
        assert cfg.namespace == ""
        assert cfg.labels == {}
        assert not cfg.parallel_test_enabled
        assert not cfg.dry_run_mode
        assert not cfg.fail_fast
        assert not cfg.disable_graceful_teardown
        assert not cfg.is_read_only

    def test_chaining(self):
        client = object()
        cfg = (
            EnvConfig()
            .with_client(client)
            .with_kubeconfig_file("/tmp/kc")
            .with_namespace("e2e")
            .with_feature_regex("^net")
            .with_assessment_regex("ready")
            .with_skip_feature_regex("slow")
            .with_skip_assessment_regex("cleanup")
            .with_labels({"tier": "smoke"})
            .with_skip_labels({"flaky": "true"})
            .with_parallel_test_enabled()
            .with_dry_run_mode()
            .with_fail_fast_mode()
            .with_disable_graceful_teardown()
        )
        assert cfg.client is client
        assert cfg.kubeconfig == "/tmp/kc"
        assert cfg.namespace == "e2e"
        assert cfg.feature_regex == "^net"
        assert cfg.assessment_regex == "ready"
        assert cfg.skip_feature_regex == "slow"
        assert cfg.skip_assessment_regex == "cleanup"
        assert cfg.labels == {"tier": "smoke"}
        assert cfg.skip_labels == {"flaky": "true"}
        assert cfg.parallel_test_enabled
        assert cfg.dry_run_mode
        assert cfg.fail_fast
        assert cfg.disable_graceful_teardown

    def test_modes_can_be_turned_off(self):
        cfg = EnvConfig().with_parallel_test_enabled().with_parallel_test_enabled(False)
        assert not cfg.parallel_test_enabled

    def test_random_namespace(self):
        ns = EnvConfig().with_random_namespace().namespace
        assert ns.startswith("testns-")
        assert len(ns) == 32

    def test_labels_are_copied(self):
        labels = {"a": "1"}
        cfg = EnvConfig().with_labels(labels)
        labels["a"] = "2"
        cfg.labels["a"] = "3"
        assert cfg.labels == {"a": "1"}

    def test_bool_label_values_become_strings(self):
        assert EnvConfig().with_skip_labels({"flaky": True}).skip_labels == {
            "flaky": "true"
        }

    def test_non_mapping_labels_rejected(self):
        with pytest.raises(ConfigError):
            EnvConfig().with_labels(["a=b"])  # type: ignore[arg-type]

    def test_extension_values(self):
        cfg = EnvConfig().with_value("image", "nginx")
        assert cfg.value("image") == "nginx"
        assert cfg.value("missing", 7) == 7
        assert cfg.values() == {"image": "nginx"}


class TestReadOnly:
    def test_setters_fail_while_read_only(self):
        cfg = EnvConfig()
        with cfg.read_only():
            assert cfg.is_read_only
            with pytest.raises(ConfigError) as exc_info:
                cfg.with_namespace("x")
            assert exc_info.value.context["setter"] == "with_namespace"
            with pytest.raises(ConfigError):
                cfg.with_value("k", "v")
        assert not cfg.is_read_only
        cfg.with_namespace("x")

    def test_reads_allowed_while_read_only(self):
        cfg = EnvConfig().with_namespace("e2e")
        with cfg.read_only():
            assert cfg.namespace == "e2e"

    def test_reentrant(self):
        cfg = EnvConfig()
        with cfg.read_only():
            with cfg.read_only():
                pass
            assert cfg.is_read_only
        assert not cfg.is_read_only

    def test_released_on_error(self):
        cfg = EnvConfig()
        with pytest.raises(RuntimeError):
            with cfg.read_only():
                raise RuntimeError("boom")
        assert not cfg.is_read_only


class TestSelection:
    def test_selection_uses_filters(self):
        sel = EnvConfig().with_feature_regex("^net").with_labels({"a": "b"}).selection()
        assert isinstance(sel, Selection)
        assert sel.feature.pattern == "^net"
        assert dict(sel.labels) == {"a": "b"}

    def test_invalid_filter(self):
        with pytest.raises(SelectionError):
            EnvConfig().with_skip_assessment_regex("*bad").selection()


class TestFromFile:
    def test_full_file(self, temp_dir, sample_config_yaml):
        path = temp_dir / "e2e.yaml"
        path.write_text(sample_config_yaml)

        cfg = EnvConfig.from_file(path)

        assert cfg.namespace == "e2e-nightly"
        assert cfg.kubeconfig == "/tmp/kubeconfig"
        assert cfg.feature_regex == "^net"
        assert cfg.assessment_regex == "ready"
        assert cfg.skip_feature_regex == "slow"
        assert cfg.skip_assessment_regex == "cleanup"
        assert cfg.labels == {"tier": "smoke"}
        assert cfg.skip_labels == {"flaky": "true"}
        assert cfg.parallel_test_enabled
        assert cfg.fail_fast
        assert not cfg.dry_run_mode
        assert cfg.value("image") == "nginx:1.27"
        assert cfg.value("replicas") == 3

    def test_partial_file_keeps_existing_settings(self, temp_dir):
        path = temp_dir / "e2e.yaml"
        path.write_text("run:\n  dry_run: true\n")

        cfg = EnvConfig().with_namespace("kept").apply_file(path)

        assert cfg.namespace == "kept"
        assert cfg.dry_run_mode

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError):
            EnvConfig.from_file(temp_dir / "missing.yaml")

    def test_env_override(self, temp_dir, monkeypatch):
        path = temp_dir / "e2e.yaml"
        path.write_text("run:\n  fail_fast: false\n")
        monkeypatch.setenv("E2E_RUN_FAIL_FAST", "true")

        assert EnvConfig.from_file(path).fail_fast

    def test_apply_file_while_read_only(self, temp_dir):
        path = temp_dir / "e2e.yaml"
        path.write_text("namespace: x\n")
        cfg = EnvConfig()
        with cfg.read_only(), pytest.raises(ConfigError):
            cfg.apply_file(path)


class TestFromFlags:
    def test_flags(self):
        cfg = EnvConfig.from_flags(
            ["--namespace", "e2e", "--labels", "tier=smoke", "--parallel"]
        )
        assert cfg.namespace == "e2e"
        assert cfg.labels == {"tier": "smoke"}
        assert cfg.parallel_test_enabled

    def test_flags_override_config_file(self, temp_dir):
        path = temp_dir / "e2e.yaml"
        path.write_text("namespace: from-file\nselection:\n  feature: file\n")

        cfg = EnvConfig.from_flags(["--config", str(path), "--feature", "flag"])

        assert cfg.namespace == "from-file"
        assert cfg.feature_regex == "flag"
