"""
Configuración de una ejecución de plan.

Se resuelve una vez en la capa CLI y se pasa explícita a build_plans/render;
el core nunca lee estado global.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, model_validator

from formation.core.errors import ValidationError


class OutputMode(str, Enum):
    HUMAN = "human"
    JSON = "json"


class ClusterSelector(BaseModel):
    """Clusters a planificar: nombres explícitos o todos los declarados en el proyecto."""
    names: List[str] = Field(default_factory=list)
    all_clusters: bool = False

    @model_validator(mode="after")
    def validate_selection(self):
        """Exactamente uno de: names o all_clusters."""
        if self.all_clusters and self.names:
            raise ValueError("Usa nombres de cluster o all_clusters, no ambos")
        if not self.all_clusters and not self.names:
            raise ValueError("Debe indicarse al menos un cluster o all_clusters")
        return self

    class Config:
        frozen = True


class PlanConfig(BaseModel):
    project_dir: Path
    clusters: ClusterSelector
    service: Optional[str] = None
    output: OutputMode = OutputMode.HUMAN
    parameters: Dict[str, str] = Field(default_factory=dict)
    max_workers: int = Field(4, ge=1)

    @property
    def fail_fast(self) -> bool:
        """Un solo cluster o un servicio concreto: cualquier error aborta la ejecución."""
        return self.service is not None or (
            not self.clusters.all_clusters and len(self.clusters.names) == 1
        )

    class Config:
        frozen = True


def parse_key_values(tokens: Iterable[str]) -> Dict[str, str]:
    """
    Convierte tokens 'key=value' en dict (el último gana si se repite la clave).
    El valor puede contener '='; la clave no puede estar vacía.
    """
    params: Dict[str, str] = {}
    for token in tokens:
        if "=" not in token:
            raise ValidationError(f"Parámetro inválido '{token}': se esperaba key=value")
        key, value = token.split("=", 1)
        key = key.strip()
        if not key:
            raise ValidationError(f"Parámetro inválido '{token}': clave vacía")
        params[key] = value.strip()
    return params
