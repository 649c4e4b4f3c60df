"""
Contratos que deben implementar los colaboradores del planificador.

El core solo define interfaces; la implementación vive en formation/providers/*
(ECS vía boto3, proyecto YAML en disco). Los tests usan implementaciones en memoria.
"""

from typing import Dict, List, Protocol
from pathlib import Path

from formation.core.service.models import ClusterSnapshot, DesiredServiceSpec


class StateFetcher(Protocol):
    """
    Protocolo: quien obtiene el estado real de un cluster.
    Reintentos y throttling son responsabilidad de la implementación.
    """
    def fetch_cluster_snapshot(self, cluster_name: str) -> ClusterSnapshot:
        """Instancias + servicios (con su autoscaling). Lanza FetchError."""
        ...


class DesiredStateLoader(Protocol):
    """Protocolo: quien lee y valida la configuración deseada del proyecto."""
    def list_clusters(self, project_dir: Path) -> List[str]:
        """Clusters declarados en el proyecto. Lanza ConfigError."""
        ...

    def load_desired_services(
        self,
        project_dir: Path,
        cluster_name: str,
        parameters: Dict[str, str],
    ) -> List[DesiredServiceSpec]:
        """Servicios declarados para el cluster, en orden de declaración. Lanza ConfigError."""
        ...

