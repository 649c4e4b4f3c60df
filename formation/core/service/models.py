"""
Modelos de estado del planificador (agnósticos de interfaz y de AWS).

- Estado real: CurrentServiceState, AutoScalingState, CurrentServiceEntry (snapshots inmutables).
- Estado deseado: DesiredServiceSpec (ya validado por el loader).
- Plan: PlanAction (variante etiquetada por `kind`), PlannedServiceEntry, ClusterPlan.

Las listas (load balancers, placement) son ordenadas: el orden forma parte de la igualdad.
"""

import re
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class ServiceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DRAINING = "DRAINING"
    INACTIVE = "INACTIVE"


# --- Referencias normalizadas ---

_TASK_DEFINITION_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,255}:[0-9]+$")


def task_definition_ref(value: str) -> str:
    """
    ARN de task definition → family:revision.
    arn:aws:ecs:us-east-1:123:task-definition/web-app:3 → web-app:3
    """
    if value.startswith("arn:") and "task-definition/" in value:
        return value.split("task-definition/", 1)[1]
    return value


def is_task_definition_ref(value: str) -> bool:
    return bool(_TASK_DEFINITION_PATTERN.match(value))


def role_name(value: Optional[str]) -> Optional[str]:
    """
    ARN de rol IAM → nombre del rol (último segmento; ignora el path).
    arn:aws:iam::123:role/service-role/ecsServiceRole → ecsServiceRole
    """
    if value is None:
        return None
    if value.startswith("arn:") and ":role/" in value:
        return value.rsplit("/", 1)[1]
    return value


class ChangedField(str, Enum):
    """Atributos que se pueden actualizar sobre un servicio en ejecución."""
    TASK_DEFINITION = "task_definition"
    DESIRED_COUNT = "desired_count"
    MINIMUM_HEALTHY_PERCENT = "minimum_healthy_percent"
    MAXIMUM_PERCENT = "maximum_percent"
    ROLE = "role"
    AUTO_SCALING = "auto_scaling"


class ImmutableField(str, Enum):
    """Atributos fijados al crear el servicio; cambiarlos obliga a recrearlo."""
    LOAD_BALANCERS = "load_balancers"
    PLACEMENT_STRATEGY = "placement_strategy"
    PLACEMENT_CONSTRAINTS = "placement_constraints"


# --- Piezas compartidas (deseado y real) ---

class LoadBalancerBinding(BaseModel):
    """
    Asociación contenedor → balanceador.
    target_ref: nombre del ELB clásico o ARN del target group.
    """
    target_ref: Optional[str] = Field(None, description="Nombre de ELB o ARN de target group")
    container_name: str = Field(..., description="Contenedor que recibe tráfico")
    container_port: int = Field(..., ge=0, le=65535, description="Puerto del contenedor")

    class Config:
        frozen = True


class PlacementStrategyRule(BaseModel):
    type: str = Field(..., description="spread | binpack | random")
    field: Optional[str] = Field(None, description="ej: instanceId, memory, attribute:ecs.availability-zone")

    class Config:
        frozen = True
        extra = "forbid"


class PlacementConstraintRule(BaseModel):
    type: str = Field(..., description="distinctInstance | memberOf")
    expression: Optional[str] = Field(None, description="Expresión de cluster query language")

    class Config:
        frozen = True
        extra = "forbid"


# --- Estado real ---

class CurrentServiceState(BaseModel):
    """Snapshot de un servicio tal como lo reporta el control plane."""
    service_name: str
    service_arn: str
    status: ServiceStatus
    task_definition: str
    desired_count: int
    pending_count: int = 0
    running_count: int = 0
    minimum_healthy_percent: Optional[int] = None
    maximum_percent: Optional[int] = None
    role: Optional[str] = None
    load_balancers: List[LoadBalancerBinding] = Field(default_factory=list)
    placement_strategy: List[PlacementStrategyRule] = Field(default_factory=list)
    placement_constraints: List[PlacementConstraintRule] = Field(default_factory=list)

    class Config:
        frozen = True


class AutoScalingState(BaseModel):
    """Scalable target registrado para el servicio."""
    resource_id: str = Field(..., description="service/<cluster>/<service>")
    min_capacity: int
    max_capacity: int
    role: Optional[str] = None

    class Config:
        frozen = True


class CurrentServiceEntry(BaseModel):
    service: CurrentServiceState
    auto_scaling: Optional[AutoScalingState] = None

    class Config:
        frozen = True


# --- Estado deseado ---

class AutoScalingTarget(BaseModel):
    min_capacity: int = Field(..., ge=0)
    max_capacity: int = Field(..., ge=0)
    role: Optional[str] = None

    @model_validator(mode="after")
    def validate_bounds(self):
        """min_capacity nunca puede superar a max_capacity."""
        if self.min_capacity > self.max_capacity:
            raise ValueError(
                f"min_capacity ({self.min_capacity}) mayor que max_capacity ({self.max_capacity})"
            )
        return self

    class Config:
        frozen = True
        extra = "forbid"


class AutoScalingSpec(BaseModel):
    target: Optional[AutoScalingTarget] = None

    class Config:
        frozen = True
        extra = "forbid"


class DesiredServiceSpec(BaseModel):
    """
    Servicio declarado en service/<cluster>.yml.
    minimum_healthy_percent / maximum_percent: None = "sin opinión" (no es lo mismo que 0).
    keep_desired_count: el desired_count real (autoscaler) manda; el declarado no se compara.
    """
    name: str = Field(..., min_length=1)
    task_definition: str = Field(..., min_length=1)
    desired_count: int = Field(0, ge=0)
    keep_desired_count: bool = False
    minimum_healthy_percent: Optional[int] = Field(None, ge=0)
    maximum_percent: Optional[int] = Field(None, ge=0)
    role: Optional[str] = None
    load_balancers: List[LoadBalancerBinding] = Field(default_factory=list)
    auto_scaling: Optional[AutoScalingSpec] = None
    placement_strategy: List[PlacementStrategyRule] = Field(default_factory=list)
    placement_constraints: List[PlacementConstraintRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_deployment_percents(self):
        """Si ambos porcentajes están presentes, el mínimo no puede superar al máximo."""
        low, high = self.minimum_healthy_percent, self.maximum_percent
        if low is not None and high is not None and low > high:
            raise ValueError(
                f"minimum_healthy_percent ({low}) mayor que maximum_percent ({high})"
            )
        return self

    @property
    def auto_scaling_target(self) -> Optional[AutoScalingTarget]:
        return self.auto_scaling.target if self.auto_scaling else None

    class Config:
        frozen = True


# --- Plan ---

class CreateAction(BaseModel):
    kind: Literal["create"] = "create"

    class Config:
        frozen = True


class UpdateInPlaceAction(BaseModel):
    kind: Literal["update_in_place"] = "update_in_place"
    changes: List[ChangedField] = Field(default_factory=list)

    class Config:
        frozen = True


class RequiresRecreateAction(BaseModel):
    """
    Algún atributo inmutable difiere. reasons solo lista inmutables;
    changes solo puede llevar auto_scaling (se aplica aparte, contra el servicio de escalado).
    """
    kind: Literal["requires_recreate"] = "requires_recreate"
    reasons: List[ImmutableField] = Field(default_factory=list)
    changes: List[ChangedField] = Field(default_factory=list)

    class Config:
        frozen = True


class NoOpAction(BaseModel):
    kind: Literal["noop"] = "noop"

    class Config:
        frozen = True


PlanAction = Annotated[
    Union[CreateAction, UpdateInPlaceAction, RequiresRecreateAction, NoOpAction],
    Field(discriminator="kind"),
]


class PlannedServiceEntry(BaseModel):
    desired: DesiredServiceSpec
    action: PlanAction

    class Config:
        frozen = True


class ClusterPlan(BaseModel):
    """Plan de un cluster: estado real (para mostrar) + acciones por servicio declarado."""
    cluster_name: str
    instance_identifiers: List[str] = Field(default_factory=list)
    current_services: List[CurrentServiceEntry] = Field(default_factory=list)
    planned_services: List[PlannedServiceEntry] = Field(default_factory=list)

    class Config:
        frozen = True


class ClusterSnapshot(BaseModel):
    """Lo que devuelve el State Fetcher para un cluster."""
    instance_identifiers: List[str] = Field(default_factory=list)
    services: List[CurrentServiceEntry] = Field(default_factory=list)

    class Config:
        frozen = True
