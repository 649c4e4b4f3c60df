from __future__ import annotations

from fakes import current, desired
from formation.core.service.classifier import classify
from formation.core.service.models import (
    AutoScalingSpec,
    AutoScalingState,
    AutoScalingTarget,
    ChangedField,
    CreateAction,
    ImmutableField,
    LoadBalancerBinding,
    NoOpAction,
    PlacementConstraintRule,
    PlacementStrategyRule,
    RequiresRecreateAction,
    UpdateInPlaceAction,
)


def _lb(target: str, port: int = 80) -> LoadBalancerBinding:
    return LoadBalancerBinding(target_ref=target, container_name="web", container_port=port)


def _scaling(min_capacity: int, max_capacity: int, role: str = "arn:role/scale") -> AutoScalingSpec:
    return AutoScalingSpec(target=AutoScalingTarget(min_capacity=min_capacity, max_capacity=max_capacity, role=role))


def _scaling_state(min_capacity: int, max_capacity: int, role: str = "arn:role/scale") -> AutoScalingState:
    return AutoScalingState(
        resource_id="service/main/web", min_capacity=min_capacity, max_capacity=max_capacity, role=role,
    )


def test_missing_current_is_create() -> None:
    assert classify(None, desired("api", desired_count=2)) == CreateAction()


def test_create_ignores_everything_else() -> None:
    spec = desired(
        "api",
        keep_desired_count=True,
        load_balancers=[_lb("api-elb")],
        auto_scaling=_scaling(1, 3),
    )
    assert classify(None, spec).kind == "create"


def test_inactive_counterpart_is_create() -> None:
    assert classify(current("api", status="INACTIVE"), desired("api")) == CreateAction()


def test_draining_counterpart_is_still_compared() -> None:
    assert classify(current("api", status="DRAINING"), desired("api")) == NoOpAction()


def test_all_equal_is_noop() -> None:
    entry = current(
        "web",
        minimum_healthy_percent=50,
        maximum_percent=200,
        role="ecsServiceRole",
        load_balancers=[_lb("web-elb")],
        placement_strategy=[PlacementStrategyRule(type="spread", field="instanceId")],
        placement_constraints=[PlacementConstraintRule(type="distinctInstance")],
        auto_scaling=_scaling_state(1, 4),
    )
    spec = desired(
        "web",
        minimum_healthy_percent=50,
        maximum_percent=200,
        role="ecsServiceRole",
        load_balancers=[_lb("web-elb")],
        placement_strategy=[PlacementStrategyRule(type="spread", field="instanceId")],
        placement_constraints=[PlacementConstraintRule(type="distinctInstance")],
        auto_scaling=_scaling(1, 4),
    )
    assert classify(entry, spec) == NoOpAction()


def test_keep_desired_count_ignores_live_count() -> None:
    entry = current("worker", desired_count=5)
    spec = desired("worker", desired_count=1, keep_desired_count=True)
    assert classify(entry, spec) == NoOpAction()


def test_keep_desired_count_still_reports_other_fields() -> None:
    entry = current("worker", desired_count=5)
    spec = desired("worker", desired_count=1, keep_desired_count=True, task_definition="worker:2")
    assert classify(entry, spec) == UpdateInPlaceAction(changes=[ChangedField.TASK_DEFINITION])


def test_desired_count_difference_without_keep() -> None:
    entry = current("worker", desired_count=5)
    spec = desired("worker", desired_count=1)
    assert classify(entry, spec) == UpdateInPlaceAction(changes=[ChangedField.DESIRED_COUNT])


def test_absent_deployment_percents_never_differ() -> None:
    entry = current("web", minimum_healthy_percent=0, maximum_percent=150)
    assert classify(entry, desired("web")) == NoOpAction()


def test_present_deployment_percents_are_compared() -> None:
    entry = current("web", minimum_healthy_percent=50, maximum_percent=200)
    spec = desired("web", minimum_healthy_percent=0, maximum_percent=200)
    assert classify(entry, spec) == UpdateInPlaceAction(changes=[ChangedField.MINIMUM_HEALTHY_PERCENT])


def test_zero_percent_differs_from_missing_current_value() -> None:
    spec = desired("web", maximum_percent=0)
    assert classify(current("web"), spec) == UpdateInPlaceAction(changes=[ChangedField.MAXIMUM_PERCENT])


def test_role_added_or_removed_differs() -> None:
    assert classify(current("web"), desired("web", role="ecsServiceRole")).changes == [ChangedField.ROLE]
    assert classify(current("web", role="ecsServiceRole"), desired("web")).changes == [ChangedField.ROLE]


def test_changes_follow_field_order() -> None:
    entry = current("web", role="old-role")
    spec = desired("web", role="new-role", task_definition="web:9", desired_count=7)
    action = classify(entry, spec)
    assert action.changes == [ChangedField.TASK_DEFINITION, ChangedField.DESIRED_COUNT, ChangedField.ROLE]


def test_load_balancer_order_requires_recreate() -> None:
    entry = current("web", load_balancers=[_lb("a"), _lb("b")])
    spec = desired("web", load_balancers=[_lb("b"), _lb("a")])
    assert classify(entry, spec) == RequiresRecreateAction(reasons=[ImmutableField.LOAD_BALANCERS])


def test_load_balancer_port_requires_recreate() -> None:
    entry = current("web", load_balancers=[_lb("a", 80)])
    spec = desired("web", load_balancers=[_lb("a", 8080)])
    assert classify(entry, spec).reasons == [ImmutableField.LOAD_BALANCERS]


def test_placement_strategy_change_requires_recreate() -> None:
    entry = current("web", placement_strategy=[PlacementStrategyRule(type="spread", field="instanceId")])
    spec = desired("web", placement_strategy=[PlacementStrategyRule(type="binpack", field="memory")])
    assert classify(entry, spec) == RequiresRecreateAction(reasons=[ImmutableField.PLACEMENT_STRATEGY])


def test_placement_constraint_removed_requires_recreate() -> None:
    entry = current("web", placement_constraints=[PlacementConstraintRule(type="distinctInstance")])
    assert classify(entry, desired("web")).reasons == [ImmutableField.PLACEMENT_CONSTRAINTS]


def test_recreate_takes_precedence_over_mutable_changes() -> None:
    entry = current("web", load_balancers=[_lb("a")])
    spec = desired("web", load_balancers=[_lb("b")], task_definition="web:2", desired_count=9)
    action = classify(entry, spec)
    assert action == RequiresRecreateAction(reasons=[ImmutableField.LOAD_BALANCERS])
    assert action.changes == []


def test_recreate_carries_autoscaling_alongside() -> None:
    entry = current("web", load_balancers=[_lb("a")], auto_scaling=_scaling_state(1, 2))
    spec = desired("web", load_balancers=[_lb("b")], auto_scaling=_scaling(1, 6))
    assert classify(entry, spec) == RequiresRecreateAction(
        reasons=[ImmutableField.LOAD_BALANCERS],
        changes=[ChangedField.AUTO_SCALING],
    )


def test_autoscaling_register_update_and_deregister() -> None:
    register = classify(current("web"), desired("web", auto_scaling=_scaling(1, 4)))
    update = classify(current("web", auto_scaling=_scaling_state(1, 4)), desired("web", auto_scaling=_scaling(2, 4)))
    deregister = classify(current("web", auto_scaling=_scaling_state(1, 4)), desired("web"))
    for action in (register, update, deregister):
        assert action == UpdateInPlaceAction(changes=[ChangedField.AUTO_SCALING])


def test_autoscaling_block_without_target_means_none() -> None:
    spec = desired("web", auto_scaling=AutoScalingSpec(target=None))
    assert classify(current("web"), spec) == NoOpAction()


def test_autoscaling_with_keep_desired_count() -> None:
    entry = current("web", desired_count=8, auto_scaling=_scaling_state(2, 10))
    spec = desired("web", desired_count=2, keep_desired_count=True, auto_scaling=_scaling(2, 10))
    assert classify(entry, spec) == NoOpAction()


def test_autoscaling_without_desired_role_accepts_any_live_role() -> None:
    linked = "arn:aws:iam::123:role/aws-service-role/ecs.application-autoscaling.amazonaws.com/AWSServiceRoleForApplicationAutoScaling_ECSService"
    entry = current("web", auto_scaling=_scaling_state(1, 4, role=linked))
    spec = desired("web", auto_scaling=AutoScalingSpec(target=AutoScalingTarget(min_capacity=1, max_capacity=4)))
    assert classify(entry, spec) == NoOpAction()


def test_autoscaling_desired_role_is_still_compared() -> None:
    entry = current("web", auto_scaling=_scaling_state(1, 4, role="arn:aws:iam::123:role/other"))
    spec = desired("web", auto_scaling=_scaling(1, 4, role="ecsAutoscaleRole"))
    assert classify(entry, spec) == UpdateInPlaceAction(changes=[ChangedField.AUTO_SCALING])


def test_role_arn_and_role_name_are_the_same_role() -> None:
    entry = current("web", role="arn:aws:iam::123:role/ecsServiceRole")
    assert classify(entry, desired("web", role="ecsServiceRole")) == NoOpAction()


def test_task_definition_arn_matches_family_revision() -> None:
    entry = current("web", task_definition="arn:aws:ecs:us-east-1:123:task-definition/web:4")
    assert classify(entry, desired("web", task_definition="web:4")) == NoOpAction()
    assert classify(entry, desired("web", task_definition="web:5")).changes == [ChangedField.TASK_DEFINITION]
