#!/usr/bin/env python3
"""
Deployment suite against an in-memory cluster.

This example demonstrates:
- Global setup and finish funcs creating and deleting shared state
- Feature setup, assessments and teardown threading values through the context
- Table-driven features with per-row labels
- Selection by labels and regexes from the command line or e2e.yaml

Usage:
    e2ekit deployment_suite:env                  # run from this directory
    e2ekit deployment_suite:env --config e2e.yaml
    e2ekit deployment_suite:env --skip-labels size=large --parallel
    python deployment_suite.py --dry-run

Expected output:
- One log line per unit (PASS / FAIL / SKIP) with its duration
- A results table with one row per unit
- Exit code 0 when every selected unit passed
"""

import sys
import threading

from e2ekit import Environment, EnvConfig, Table, TableRow, features
from e2ekit.env import ConsoleReporter


class FakeCluster:
    """Thread-safe stand-in for a cluster API client."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.namespaces: set[str] = set()
        self.deployments: dict[str, int] = {}

    def create_namespace(self, name: str) -> None:
        with self._lock:
            self.namespaces.add(name)

    def delete_namespace(self, name: str) -> None:
        with self._lock:
            self.namespaces.discard(name)

    def apply(self, name: str, replicas: int) -> None:
        with self._lock:
            self.deployments[name] = replicas

    def delete(self, name: str) -> None:
        with self._lock:
            self.deployments.pop(name, None)

    def ready_replicas(self, name: str) -> int:
        with self._lock:
            return self.deployments.get(name, 0)


def create_namespace(ctx, cfg):
    cfg.client.create_namespace(cfg.namespace)
    return ctx.with_value("namespace", cfg.namespace)


def delete_namespace(ctx, cfg):
    cfg.client.delete_namespace(cfg.namespace)
    return ctx


def apply_deployment(ctx, t, cfg):
    replicas = cfg.value("replicas", 2)
    cfg.client.apply("nginx", replicas)
    t.log(f"applied nginx with {replicas} replicas")
    return ctx.with_value("deployment", "nginx")


def replicas_ready(ctx, t, cfg):
    name = ctx.value("deployment")
    if name is None:
        t.fatal("deployment missing from context")
    want = cfg.value("replicas", 2)
    got = cfg.client.ready_replicas(name)
    if got != want:
        t.error(f"{got}/{want} replicas ready")
    return ctx


def namespace_exists(ctx, t, cfg):
    if ctx.value("namespace") not in cfg.client.namespaces:
        t.error("namespace was not created")
    return ctx


def delete_deployment(ctx, t, cfg):
    cfg.client.delete(ctx.value("deployment"))
    return ctx


def payload_check(size):
    def check(ctx, t, cfg):
        if size > cfg.value("max_payload", 1024):
            t.skip(f"payload of {size} bytes exceeds the limit")
        return ctx

    return check


def make_env(argv=None):
    cfg = EnvConfig.from_flags(argv if argv is not None else [])
    cfg.with_client(FakeCluster())
    if not cfg.namespace:
        cfg.with_random_namespace()

    env = Environment(cfg)
    env.setup(create_namespace).finish(delete_namespace)
    env.test(
        features.new("deployments")
        .with_label("tier", "smoke")
        .setup(apply_deployment)
        .assess("namespace exists", namespace_exists)
        .assess("replicas ready", replicas_ready)
        .teardown(delete_deployment),
        Table(
            [
                TableRow("small payload", payload_check(128)),
                TableRow(
                    "large payload", payload_check(4096), labels={"size": "large"}
                ),
            ]
        ).build("payloads", "upload limits"),
    )
    return env


env = make_env()


if __name__ == "__main__":
    sys.exit(make_env(sys.argv[1:]).run(ConsoleReporter()))
