"""
Clasificación: (estado real, estado deseado) → PlanAction.

Lógica pura; nunca lanza. Ante la duda se considera que el campo difiere
(mejor proponer un cambio que ocultar drift real), salvo los campos donde
"ausente" significa "sin opinión".
"""

from typing import Any, List, Optional

from formation.core.service.models import (
    AutoScalingState,
    AutoScalingTarget,
    ChangedField,
    CreateAction,
    CurrentServiceEntry,
    DesiredServiceSpec,
    ImmutableField,
    NoOpAction,
    PlanAction,
    RequiresRecreateAction,
    ServiceStatus,
    UpdateInPlaceAction,
    role_name,
    task_definition_ref,
)


def _optional_differs(desired: Optional[Any], current: Optional[Any]) -> bool:
    """Deseado ausente nunca difiere; presente se compara tal cual."""
    if desired is None:
        return False
    return desired != current


def auto_scaling_differs(
    desired: Optional[AutoScalingTarget],
    current: Optional[AutoScalingState],
) -> bool:
    """
    Registrar, actualizar umbrales o desregistrar el scalable target.
    Ausente en ambos lados = sin cambio. Sin role deseado no se opina sobre el
    role: AWS siempre devuelve uno (el service-linked role por defecto).
    """
    if desired is None and current is None:
        return False
    if desired is None or current is None:
        return True
    return (
        desired.min_capacity != current.min_capacity
        or desired.max_capacity != current.max_capacity
        or _optional_differs(role_name(desired.role), role_name(current.role))
    )


def mutable_changes(current: CurrentServiceEntry, desired: DesiredServiceSpec) -> List[ChangedField]:
    """Campos actualizables que difieren, en el orden de ChangedField."""
    service = current.service
    found = set()

    # Igualdad exacta sobre family:revision (un ARN se reduce a esa forma)
    if task_definition_ref(desired.task_definition) != task_definition_ref(service.task_definition):
        found.add(ChangedField.TASK_DEFINITION)

    # keep_desired_count: el count vivo (autoscaler) es la autoridad
    if not desired.keep_desired_count and desired.desired_count != service.desired_count:
        found.add(ChangedField.DESIRED_COUNT)

    if _optional_differs(desired.minimum_healthy_percent, service.minimum_healthy_percent):
        found.add(ChangedField.MINIMUM_HEALTHY_PERCENT)
    if _optional_differs(desired.maximum_percent, service.maximum_percent):
        found.add(ChangedField.MAXIMUM_PERCENT)

    if role_name(desired.role) != role_name(service.role):
        found.add(ChangedField.ROLE)

    if auto_scaling_differs(desired.auto_scaling_target, current.auto_scaling):
        found.add(ChangedField.AUTO_SCALING)

    return [f for f in ChangedField if f in found]


def immutable_changes(current: CurrentServiceEntry, desired: DesiredServiceSpec) -> List[ImmutableField]:
    """Campos fijados en la creación que difieren (comparación de lista completa, con orden)."""
    service = current.service
    found = set()
    if list(desired.load_balancers) != list(service.load_balancers):
        found.add(ImmutableField.LOAD_BALANCERS)
    if list(desired.placement_strategy) != list(service.placement_strategy):
        found.add(ImmutableField.PLACEMENT_STRATEGY)
    if list(desired.placement_constraints) != list(service.placement_constraints):
        found.add(ImmutableField.PLACEMENT_CONSTRAINTS)
    return [f for f in ImmutableField if f in found]


def classify(current: Optional[CurrentServiceEntry], desired: DesiredServiceSpec) -> PlanAction:
    """
    Decide la acción para un servicio declarado.

    - Sin contraparte real (o contraparte INACTIVE, ya borrada) → CreateAction.
    - Algún inmutable difiere → RequiresRecreateAction; solo el autoscaling
      se reporta junto a la acción principal.
    - Solo mutables difieren → UpdateInPlaceAction.
    - Nada difiere → NoOpAction.
    """
    if current is None or current.service.status == ServiceStatus.INACTIVE:
        return CreateAction()

    reasons = immutable_changes(current, desired)
    changes = mutable_changes(current, desired)

    if reasons:
        alongside = [c for c in changes if c == ChangedField.AUTO_SCALING]
        return RequiresRecreateAction(reasons=reasons, changes=alongside)
    if changes:
        return UpdateInPlaceAction(changes=changes)
    return NoOpAction()
