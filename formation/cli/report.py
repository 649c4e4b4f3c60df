"""
Reporte de planes: JSON canónico (máquinas) o reporte jerárquico con Rich (personas).

Los modos son excluyentes. El reporte humano se arma con renderers pequeños:
cada sección recibe una subestructura (presente o no) y devuelve cero o un bloque;
la sección del plan despacha por PlanAction.kind.
"""

import io
import json
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import TypeAdapter
from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from formation.core.service.config import OutputMode
from formation.core.service.models import (
    AutoScalingState,
    AutoScalingTarget,
    ChangedField,
    ClusterPlan,
    CurrentServiceEntry,
    DesiredServiceSpec,
    ImmutableField,
    LoadBalancerBinding,
    PlacementConstraintRule,
    PlacementStrategyRule,
    PlannedServiceEntry,
)
from formation.core.service.planner import ClusterFailure


_PLANS_ADAPTER = TypeAdapter(List[ClusterPlan])

INDENT = "    "


# --- Structured ---

def render_structured(plans: List[ClusterPlan]) -> str:
    """JSON completo y estable: orden de campos del modelo, null para opcionales ausentes."""
    return json.dumps(
        [plan.model_dump(mode="json") for plan in plans],
        indent=2,
        ensure_ascii=False,
    )


def parse_structured(text: str) -> List[ClusterPlan]:
    """Inverso de render_structured."""
    return _PLANS_ADAPTER.validate_json(text)


# --- Human: piezas ---

def _line(level: int, label: str, value: object = None) -> Text:
    if value is None:
        return Text.from_markup(f"{INDENT * level}[cyan]{escape(label)}[/cyan]")
    return Text.from_markup(f"{INDENT * level}[cyan]{escape(label)}[/cyan] = {escape(str(value))}")


def _target_label(target_ref: Optional[str]) -> str:
    if target_ref and target_ref.startswith("arn:"):
        return "TargetGroupARN"
    return "ELB"


def _load_balancer_lines(bindings: List[LoadBalancerBinding], level: int) -> List[Text]:
    lines: List[Text] = []
    for lb in bindings:
        if lb.target_ref:
            lines.append(_line(level, _target_label(lb.target_ref), lb.target_ref))
        lines.append(_line(level + 1, "ContainerName", lb.container_name))
        lines.append(_line(level + 1, "ContainerPort", lb.container_port))
    return lines


def _strategy_lines(rules: List[PlacementStrategyRule], level: int) -> List[Text]:
    if not rules:
        return []
    lines = [_line(level, "PlacementStrategy:")]
    for rule in rules:
        lines.append(Text(f"{INDENT * level}  -"))
        lines.append(_line(level + 1, "Type", rule.type))
        lines.append(_line(level + 1, "Field", rule.field or ""))
    return lines


def _constraint_lines(rules: List[PlacementConstraintRule], level: int) -> List[Text]:
    if not rules:
        return []
    lines = [_line(level, "PlacementConstraints:")]
    for rule in rules:
        lines.append(Text(f"{INDENT * level}  -"))
        lines.append(_line(level + 1, "Type", rule.type))
        lines.append(_line(level + 1, "Expression", rule.expression or ""))
    return lines


def _current_auto_scaling_lines(state: Optional[AutoScalingState], level: int) -> List[Text]:
    if state is None:
        return []
    return [
        _line(level, "AutoScaling:"),
        _line(level + 1, "ResourceId", state.resource_id),
        _line(level + 1, "MinCapacity", state.min_capacity),
        _line(level + 1, "MaxCapacity", state.max_capacity),
        _line(level + 1, "RoleARN", state.role or ""),
    ]


def _desired_auto_scaling_lines(target: Optional[AutoScalingTarget], level: int) -> List[Text]:
    if target is None:
        return []
    return [
        _line(level, "AutoScaling:"),
        _line(level + 1, "MinCapacity", target.min_capacity),
        _line(level + 1, "MaxCapacity", target.max_capacity),
        _line(level + 1, "RoleARN", target.role or ""),
    ]


# --- Human: estado real ---

def render_instances(instance_identifiers: List[str]) -> Optional[RenderableType]:
    if not instance_identifiers:
        return None
    lines = [Text.from_markup(f"{INDENT}[bold]Container Instances:[/bold]")]
    lines.extend(Text(f"{INDENT * 2}{arn}") for arn in instance_identifiers)
    return Group(*lines)


def render_current_service(entry: CurrentServiceEntry) -> RenderableType:
    service = entry.service
    level = 2
    lines: List[Text] = [
        Text(f"{INDENT * level}####[{service.service_name}]####", style="bold yellow"),
        _line(level, "ServiceARN", service.service_arn),
        _line(level, "TaskDefinition", service.task_definition),
        _line(level, "DesiredCount", service.desired_count),
        _line(level, "PendingCount", service.pending_count),
        _line(level, "RunningCount", service.running_count),
    ]
    if service.role is not None:
        lines.append(_line(level, "Role", service.role))
    if service.minimum_healthy_percent is not None:
        lines.append(_line(level, "MinimumHealthyPercent", service.minimum_healthy_percent))
    if service.maximum_percent is not None:
        lines.append(_line(level, "MaximumPercent", service.maximum_percent))
    lines.extend(_load_balancer_lines(service.load_balancers, level))
    lines.append(_line(level, "STATUS", service.status.value))
    lines.extend(_current_auto_scaling_lines(entry.auto_scaling, level))
    lines.extend(_strategy_lines(service.placement_strategy, level))
    lines.extend(_constraint_lines(service.placement_constraints, level))
    lines.append(Text(""))
    return Group(*lines)


def render_current_services(entries: List[CurrentServiceEntry]) -> RenderableType:
    header = Text.from_markup(f"{INDENT}[bold]Services:[/bold]")
    if not entries:
        return Group(header, Text.from_markup(f"{INDENT * 2}[dim]No hay servicios desplegados.[/dim]"))
    return Group(header, *(render_current_service(e) for e in entries))


# --- Human: plan ---

def _desired_spec_lines(desired: DesiredServiceSpec, level: int) -> List[Text]:
    lines = [
        _line(level, "TaskDefinition", desired.task_definition),
        _line(level, "DesiredCount", desired.desired_count),
        _line(level, "KeepDesiredCount", str(desired.keep_desired_count).lower()),
    ]
    if desired.minimum_healthy_percent is not None:
        lines.append(_line(level, "MinimumHealthyPercent", desired.minimum_healthy_percent))
    if desired.maximum_percent is not None:
        lines.append(_line(level, "MaximumPercent", desired.maximum_percent))
    if desired.role is not None:
        lines.append(_line(level, "Role", desired.role))
    lines.extend(_load_balancer_lines(desired.load_balancers, level))
    lines.extend(_desired_auto_scaling_lines(desired.auto_scaling_target, level))
    lines.extend(_strategy_lines(desired.placement_strategy, level))
    lines.extend(_constraint_lines(desired.placement_constraints, level))
    return lines


def _format_list(items: list) -> str:
    if not items:
        return "[]"
    return ", ".join(
        "{" + ", ".join(f"{k}={v}" for k, v in item.model_dump().items()) + "}"
        for item in items
    )


def _auto_scaling_text(min_capacity: int, max_capacity: int, role: Optional[str]) -> str:
    return f"min={min_capacity} max={max_capacity} role={role or '-'}"


def field_values(field, current: Optional[CurrentServiceEntry], desired: DesiredServiceSpec) -> Tuple[str, str]:
    """(actual, deseado) legibles para un ChangedField o ImmutableField."""
    service = current.service if current else None

    if field == ChangedField.AUTO_SCALING:
        state = current.auto_scaling if current else None
        target = desired.auto_scaling_target
        actual = _auto_scaling_text(state.min_capacity, state.max_capacity, state.role) if state else "-"
        wanted = _auto_scaling_text(target.min_capacity, target.max_capacity, target.role) if target else "-"
        return actual, wanted

    if isinstance(field, ImmutableField):
        actual_items = getattr(service, field.value, []) if service else []
        return _format_list(list(actual_items)), _format_list(list(getattr(desired, field.value)))

    actual_value = getattr(service, field.value, None) if service else None
    wanted_value = getattr(desired, field.value)
    return (
        "-" if actual_value is None else str(actual_value),
        "-" if wanted_value is None else str(wanted_value),
    )


def _changes_table(fields: list, current: Optional[CurrentServiceEntry], desired: DesiredServiceSpec, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", title_justify="left")
    table.add_column("Campo", style="cyan")
    table.add_column("Actual", style="yellow")
    table.add_column("Deseado", style="green")
    for field in fields:
        actual, wanted = field_values(field, current, desired)
        table.add_row(field.value, Text(actual), Text(wanted))
    return table


ActionRenderer = Callable[[PlannedServiceEntry, Optional[CurrentServiceEntry]], RenderableType]


def _render_create(entry: PlannedServiceEntry, current: Optional[CurrentServiceEntry]) -> RenderableType:
    name = entry.desired.name
    return Group(
        Text(f"{INDENT * 2}+ ####[{name}]#### (crear)", style="bold green"),
        *_desired_spec_lines(entry.desired, 2),
        Text(""),
    )


def _render_update(entry: PlannedServiceEntry, current: Optional[CurrentServiceEntry]) -> RenderableType:
    name = entry.desired.name
    return Group(
        Text(f"{INDENT * 2}~ ####[{name}]#### (actualizar)", style="bold yellow"),
        _changes_table(entry.action.changes, current, entry.desired, title=f"{INDENT * 2}Cambios"),
        Text(""),
    )


def _render_recreate(entry: PlannedServiceEntry, current: Optional[CurrentServiceEntry]) -> RenderableType:
    name = escape(entry.desired.name)
    reasons = ", ".join(r.value for r in entry.action.reasons)
    blocks: List[RenderableType] = [
        Text.from_markup(f"[bold red]Motivo:[/bold red] {escape(reasons)}"),
        _changes_table(entry.action.reasons, current, entry.desired, title="Atributos inmutables"),
    ]
    if entry.action.changes:
        blocks.append(_changes_table(entry.action.changes, current, entry.desired, title="Además (autoscaling)"))
    blocks.append(Text.from_markup(
        "[yellow]⚠️ Requiere recrear el servicio: no se aplica sin confirmación explícita del operador[/yellow]"
    ))
    return Group(
        Panel.fit(
            Group(*blocks),
            title=f"[bold red]! {name} (requiere recrear)[/bold red]",
            border_style="red",
        ),
        Text(""),
    )


def _render_noop(entry: PlannedServiceEntry, current: Optional[CurrentServiceEntry]) -> RenderableType:
    name = escape(entry.desired.name)
    return Text.from_markup(f"{INDENT * 2}[green]✔ {name}[/green] [dim]sin cambios[/dim]")


ACTION_RENDERERS: Dict[str, ActionRenderer] = {
    "create": _render_create,
    "update_in_place": _render_update,
    "requires_recreate": _render_recreate,
    "noop": _render_noop,
}


def render_planned_service(entry: PlannedServiceEntry, current: Optional[CurrentServiceEntry]) -> RenderableType:
    return ACTION_RENDERERS[entry.action.kind](entry, current)


def render_plan_section(plan: ClusterPlan) -> RenderableType:
    current_by_name = {e.service.service_name: e for e in plan.current_services}
    header = Text.from_markup(f"[bold yellow]Plan de servicios '{escape(plan.cluster_name)}':[/bold yellow]")
    if not plan.planned_services:
        return Group(header, Text.from_markup(f"{INDENT}[dim]No hay servicios declarados.[/dim]"))
    return Group(
        header,
        Text.from_markup(f"{INDENT}[bold]Services:[/bold]"),
        *(
            render_planned_service(entry, current_by_name.get(entry.desired.name))
            for entry in plan.planned_services
        ),
    )


def render_cluster(plan: ClusterPlan) -> RenderableType:
    blocks: List[RenderableType] = [
        Panel.fit(
            f"[bold cyan]Estado actual del cluster '{escape(plan.cluster_name)}'[/bold cyan]",
            border_style="cyan",
        ),
    ]
    instances = render_instances(plan.instance_identifiers)
    if instances is not None:
        blocks.append(instances)
    blocks.append(render_current_services(plan.current_services))
    blocks.append(render_plan_section(plan))
    blocks.append(Text(""))
    return Group(*blocks)


def render_human(plans: List[ClusterPlan]) -> RenderableType:
    if not plans:
        return Text.from_markup("[dim]No hay clusters que planificar.[/dim]")
    return Group(*(render_cluster(plan) for plan in plans))


def render_failures(failures: List[ClusterFailure]) -> Optional[RenderableType]:
    """Resumen de clusters fallidos (siempre a la consola de errores)."""
    if not failures:
        return None
    table = Table(title="Clusters con error", show_header=True, header_style="bold red")
    table.add_column("Cluster", style="cyan")
    table.add_column("Tipo", style="red")
    table.add_column("Detalle", style="yellow")
    for failure in failures:
        table.add_row(failure.cluster_name, failure.error_type, Text(failure.message))
    return table


def render(plans: List[ClusterPlan], mode: OutputMode, width: int = 120) -> str:
    """
    Renderiza los planes como texto.
    JSON: documento canónico. HUMAN: reporte sin códigos de color.
    """
    if mode == OutputMode.JSON:
        return render_structured(plans)
    console = Console(file=io.StringIO(), record=True, width=width, color_system=None)
    console.print(render_human(plans))
    return console.export_text()
