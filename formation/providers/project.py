"""
Loader del proyecto: <proyecto>/service/<cluster>.yml → DesiredServiceSpec.

Cada YAML mapea nombre de servicio → definición. Antes de parsear se sustituyen
los placeholders ${KEY} con los parámetros (-p key=value); las claves desconocidas
se dejan tal cual. El orden de declaración se conserva.
"""

import re
from collections.abc import Hashable
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from formation.core.errors import ConfigError
from formation.core.runtime.resolver import service_dir
from formation.core.service.models import (
    AutoScalingSpec,
    DesiredServiceSpec,
    LoadBalancerBinding,
    PlacementConstraintRule,
    PlacementStrategyRule,
    is_task_definition_ref,
    task_definition_ref,
)


YAML_SUFFIXES = (".yml", ".yaml")

_PARAM_PATTERN = re.compile(r"\$\{([A-Za-z0-9_.\-]+)\}")


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader que rechaza claves repetidas en un mismo mapa (un servicio declarado dos veces)."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "al construir un mapa", node.start_mark,
                    f"clave duplicada: {key!r}", key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


# --- Formato YAML ---

class LoadBalancerDocument(BaseModel):
    """Entrada de load_balancers: ELB clásico (name) o target group (target_group_arn)."""
    name: Optional[str] = Field(None, description="Nombre del ELB clásico")
    target_group_arn: Optional[str] = Field(None, description="ARN del target group (ALB/NLB)")
    container_name: str = Field(..., description="Contenedor que recibe tráfico")
    container_port: int = Field(..., ge=0, le=65535)

    @model_validator(mode="after")
    def validate_single_target(self):
        """name y target_group_arn son excluyentes."""
        if self.name and self.target_group_arn:
            raise ValueError("Define 'name' o 'target_group_arn', no ambos")
        return self

    class Config:
        extra = "forbid"

    def to_binding(self) -> LoadBalancerBinding:
        return LoadBalancerBinding(
            target_ref=self.name or self.target_group_arn,
            container_name=self.container_name,
            container_port=self.container_port,
        )


class ServiceDocument(BaseModel):
    """Definición de un servicio dentro de service/<cluster>.yml."""
    task_definition: str = Field(..., description="family:revision (o su ARN) de la task definition")
    desired_count: int = Field(0, ge=0)
    keep_desired_count: bool = Field(False, description="No tocar el desired_count vivo (autoscaling)")
    minimum_healthy_percent: Optional[int] = Field(None, ge=0)
    maximum_percent: Optional[int] = Field(None, ge=0)
    role: Optional[str] = None
    load_balancers: List[LoadBalancerDocument] = Field(default_factory=list)
    autoscaling: Optional[AutoScalingSpec] = None
    placement_strategy: List[PlacementStrategyRule] = Field(default_factory=list)
    placement_constraints: List[PlacementConstraintRule] = Field(default_factory=list)

    @field_validator("task_definition")
    @classmethod
    def validate_task_definition(cls, v: str) -> str:
        """Se compara contra lo desplegado, que siempre lleva revisión: family sola no vale."""
        ref = task_definition_ref(v.strip())
        if not is_task_definition_ref(ref):
            raise ValueError(f"task_definition debe tener la forma family:revision (recibido {v!r})")
        return ref

    class Config:
        extra = "forbid"

    def to_spec(self, name: str) -> DesiredServiceSpec:
        return DesiredServiceSpec(
            name=name,
            task_definition=self.task_definition,
            desired_count=self.desired_count,
            keep_desired_count=self.keep_desired_count,
            minimum_healthy_percent=self.minimum_healthy_percent,
            maximum_percent=self.maximum_percent,
            role=self.role,
            load_balancers=[lb.to_binding() for lb in self.load_balancers],
            auto_scaling=self.autoscaling,
            placement_strategy=self.placement_strategy,
            placement_constraints=self.placement_constraints,
        )


def apply_parameters(text: str, parameters: Dict[str, str]) -> str:
    """Sustituye ${KEY} por su valor; placeholders sin parámetro quedan intactos."""
    def _replace(match: "re.Match") -> str:
        key = match.group(1)
        return parameters.get(key, match.group(0))
    return _PARAM_PATTERN.sub(_replace, text)


def _pydantic_message(error: PydanticValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


class ProjectLoader:
    """Desired-State Loader sobre el filesystem del proyecto."""

    def cluster_files(self, project_dir: Path) -> Dict[str, Path]:
        """cluster → archivo YAML. ConfigError si falta service/ o hay nombres duplicados."""
        base = service_dir(project_dir)
        if not base.is_dir():
            raise ConfigError(base, "No existe el directorio de servicios")
        files: Dict[str, Path] = {}
        for path in sorted(base.iterdir()):
            if not path.is_file() or path.suffix not in YAML_SUFFIXES:
                continue
            if path.stem in files:
                raise ConfigError(path, f"Cluster '{path.stem}' definido dos veces ({files[path.stem].name})")
            files[path.stem] = path
        return files

    def list_clusters(self, project_dir: Path) -> List[str]:
        return list(self.cluster_files(project_dir).keys())

    def load_desired_services(
        self,
        project_dir: Path,
        cluster_name: str,
        parameters: Dict[str, str],
    ) -> List[DesiredServiceSpec]:
        path = self.cluster_files(project_dir).get(cluster_name)
        if path is None:
            raise ConfigError(service_dir(project_dir) / f"{cluster_name}.yml", "No existe el archivo del cluster")
        try:
            with open(path, "r") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(path, e) from e
        return parse_services(text, path, parameters)


def parse_services(text: str, path: Path, parameters: Optional[Dict[str, str]] = None) -> List[DesiredServiceSpec]:
    """Parsea el contenido de un service/<cluster>.yml ya leído."""
    try:
        data: Any = yaml.load(apply_parameters(text, parameters or {}), Loader=UniqueKeyLoader)
    except yaml.YAMLError as e:
        raise ConfigError(path, f"YAML inválido: {e}") from e

    if data is None:
        return []
    if not isinstance(data, dict):
        raise ConfigError(path, "El archivo debe ser un mapa nombre_servicio → definición")

    services: List[DesiredServiceSpec] = []
    for name, body in data.items():
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(path, f"Nombre de servicio inválido: {name!r}")
        if not isinstance(body, dict):
            raise ConfigError(path, f"Servicio '{name}': la definición debe ser un mapa")
        try:
            services.append(ServiceDocument.model_validate(body).to_spec(name))
        except PydanticValidationError as e:
            raise ConfigError(path, f"Servicio '{name}': {_pydantic_message(e)}") from e
    return services
