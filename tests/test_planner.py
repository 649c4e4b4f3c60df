from __future__ import annotations

import threading
from pathlib import Path

import pytest

from fakes import FakeFetcher, FakeLoader, current, desired
from formation.core.errors import ConfigError, FetchError, ValidationError
from formation.core.service.config import ClusterSelector, OutputMode, PlanConfig
from formation.core.service.models import ClusterSnapshot
from formation.core.service.planner import build_plans, plan_cluster


def _config(*names: str, service=None, all_clusters=False, **extra) -> PlanConfig:
    return PlanConfig(
        project_dir=Path("/project"),
        clusters=ClusterSelector(names=list(names), all_clusters=all_clusters),
        service=service,
        **extra,
    )


def test_plan_follows_declared_order_not_fetch_order() -> None:
    snapshot = ClusterSnapshot(services=[current("c"), current("a")])
    plan = plan_cluster("main", snapshot, [desired("a"), desired("b"), desired("c")])
    assert [e.desired.name for e in plan.planned_services] == ["a", "b", "c"]
    assert [e.action.kind for e in plan.planned_services] == ["noop", "create", "noop"]
    assert [e.service.service_name for e in plan.current_services] == ["c", "a"]


def test_unmanaged_current_service_is_visible_but_never_planned() -> None:
    snapshot = ClusterSnapshot(instance_identifiers=["i-1"], services=[current("legacy"), current("web")])
    plan = plan_cluster("main", snapshot, [desired("web")])
    assert [e.desired.name for e in plan.planned_services] == ["web"]
    assert len(plan.current_services) == 2
    assert plan.instance_identifiers == ["i-1"]


def test_build_single_cluster() -> None:
    fetcher = FakeFetcher({"main": ClusterSnapshot(services=[current("worker", desired_count=5)])})
    loader = FakeLoader({"main": [desired("worker", desired_count=1, keep_desired_count=True), desired("api")]})
    run = build_plans(_config("main"), fetcher, loader)
    assert run.ok
    [plan] = run.plans
    assert plan.cluster_name == "main"
    assert [e.action.kind for e in plan.planned_services] == ["noop", "create"]


def test_build_is_idempotent() -> None:
    fetcher = FakeFetcher({"main": ClusterSnapshot(services=[current("web", task_definition="web:1")])})
    loader = FakeLoader({"main": [desired("web", task_definition="web:2")]})
    first = build_plans(_config("main"), fetcher, loader)
    second = build_plans(_config("main"), fetcher, loader)
    assert first == second


def test_service_filter_restricts_plan() -> None:
    fetcher = FakeFetcher({"main": ClusterSnapshot()})
    loader = FakeLoader({"main": [desired("web"), desired("api")]})
    run = build_plans(_config("main", service="api"), fetcher, loader)
    assert [e.desired.name for e in run.plans[0].planned_services] == ["api"]


def test_unknown_service_fails_before_fetching() -> None:
    fetcher = FakeFetcher({"main": ClusterSnapshot()})
    loader = FakeLoader({"main": [desired("web")]})
    with pytest.raises(ValidationError):
        build_plans(_config("main", service="nope"), fetcher, loader)
    assert fetcher.calls == []


def test_unknown_cluster_single_is_validation_error() -> None:
    loader = FakeLoader({"main": [desired("web")]})
    with pytest.raises(ValidationError):
        build_plans(_config("other"), FakeFetcher({}), loader)


def test_single_cluster_fetch_failure_is_fatal() -> None:
    fetcher = FakeFetcher({}, failing={"main": "AccessDenied"})
    loader = FakeLoader({"main": [desired("web")]})
    with pytest.raises(FetchError) as excinfo:
        build_plans(_config("main"), fetcher, loader)
    assert excinfo.value.cluster == "main"


def test_single_cluster_config_error_is_fatal() -> None:
    loader = FakeLoader({}, broken={"main": "YAML inválido"})
    with pytest.raises(ConfigError):
        build_plans(_config("main"), FakeFetcher({}), loader)


def test_multi_cluster_failure_does_not_abort_siblings() -> None:
    fetcher = FakeFetcher(
        {"second": ClusterSnapshot(services=[current("web")])},
        failing={"first": "timeout"},
    )
    loader = FakeLoader({"first": [desired("web")], "second": [desired("web"), desired("api")]})
    run = build_plans(_config("first", "second"), fetcher, loader)

    assert not run.ok
    assert [p.cluster_name for p in run.plans] == ["second"]
    assert [e.action.kind for e in run.plans[0].planned_services] == ["noop", "create"]
    [failure] = run.failures
    assert failure.cluster_name == "first"
    assert failure.error_type == "FetchError"
    assert "timeout" in failure.message
    assert sorted(fetcher.calls) == ["first", "second"]


def test_multi_cluster_records_undeclared_and_broken_clusters() -> None:
    loader = FakeLoader({"good": [desired("web")]}, broken={"bad": "schema"})
    run = build_plans(_config("ghost", "bad", "good"), FakeFetcher({}), loader)
    assert [p.cluster_name for p in run.plans] == ["good"]
    assert [(f.cluster_name, f.error_type) for f in run.failures] == [
        ("ghost", "ValidationError"),
        ("bad", "ConfigError"),
    ]


def test_all_clusters_sorted_and_ordered_despite_completion_order() -> None:
    release_b = threading.Event()

    class SlowFetcher(FakeFetcher):
        def fetch_cluster_snapshot(self, cluster_name):
            if cluster_name == "b":
                release_b.wait(timeout=5)
            else:
                release_b.set()
            return super().fetch_cluster_snapshot(cluster_name)

    loader = FakeLoader({"c": [desired("x")], "b": [desired("x")], "a": [desired("x")]})
    run = build_plans(_config(all_clusters=True, max_workers=3), SlowFetcher({}), loader)
    assert [p.cluster_name for p in run.plans] == ["a", "b", "c"]


def test_parameters_are_passed_to_loader() -> None:
    loader = FakeLoader({"main": [desired("web")]})
    build_plans(_config("main", parameters={"env": "prod"}), FakeFetcher({}), loader)
    assert loader.parameters_seen == [{"env": "prod"}]


def test_config_is_fail_fast_only_for_single_targets() -> None:
    assert _config("main").fail_fast
    assert _config("a", "b", service="web").fail_fast
    assert not _config("a", "b").fail_fast
    assert not _config(all_clusters=True).fail_fast
    assert _config("main").output == OutputMode.HUMAN


def test_unexpected_fetch_exception_is_recorded_per_cluster() -> None:
    class BrokenFetcher(FakeFetcher):
        def fetch_cluster_snapshot(self, cluster_name: str) -> ClusterSnapshot:
            if cluster_name == "a":
                raise KeyError("containerName")
            return super().fetch_cluster_snapshot(cluster_name)

    loader = FakeLoader({"a": [desired("web")], "b": [desired("web")]})
    run = build_plans(_config("a", "b"), BrokenFetcher({"b": ClusterSnapshot()}), loader)

    assert [p.cluster_name for p in run.plans] == ["b"]
    [failure] = run.failures
    assert (failure.cluster_name, failure.error_type) == ("a", "FetchError")
    assert "containerName" in failure.message


def test_unexpected_fetch_exception_single_cluster_is_fetch_error() -> None:
    class BrokenFetcher(FakeFetcher):
        def fetch_cluster_snapshot(self, cluster_name: str) -> ClusterSnapshot:
            raise RuntimeError("boom")

    with pytest.raises(FetchError, match="boom"):
        build_plans(_config("a"), BrokenFetcher({}), FakeLoader({"a": [desired("web")]}))
