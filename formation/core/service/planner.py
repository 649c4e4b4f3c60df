"""
Planificación: genera un ClusterPlan por cluster (qué aplicar) sin ejecutar nada.

Entrada = PlanConfig + colaboradores (fetcher de estado real, loader de estado deseado);
salida = PlanRun con planes y fallos por cluster, en el orden pedido.
La ejecución (apply) la hace otro componente.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from rich.console import Console
from rich.markup import escape

from formation.core.errors import ConfigError, FetchError, FormationError, ValidationError
from formation.core.infra.contracts import DesiredStateLoader, StateFetcher
from formation.core.service.classifier import classify
from formation.core.service.config import PlanConfig
from formation.core.service.models import (
    ClusterPlan,
    ClusterSnapshot,
    CurrentServiceEntry,
    DesiredServiceSpec,
    PlannedServiceEntry,
)


class ClusterFailure(BaseModel):
    """Cluster que no pudo planificarse en una ejecución multi-cluster."""
    cluster_name: str
    error_type: str = Field(..., description="FetchError | ConfigError | ValidationError")
    message: str

    class Config:
        frozen = True


class PlanRun(BaseModel):
    plans: List[ClusterPlan] = Field(default_factory=list)
    failures: List[ClusterFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    class Config:
        frozen = True


def select_service(desired: List[DesiredServiceSpec], cluster_name: str, service: Optional[str]) -> List[DesiredServiceSpec]:
    """Restringe la lista deseada al servicio pedido; ValidationError si no está declarado."""
    if service is None:
        return list(desired)
    selected = [d for d in desired if d.name == service]
    if not selected:
        raise ValidationError(
            f"El servicio '{service}' no está declarado para el cluster '{cluster_name}'"
        )
    return selected


def plan_cluster(
    cluster_name: str,
    snapshot: ClusterSnapshot,
    desired: List[DesiredServiceSpec],
) -> ClusterPlan:
    """Empareja por nombre y clasifica cada servicio deseado en orden de declaración."""
    current_by_name: Dict[str, CurrentServiceEntry] = {
        entry.service.service_name: entry for entry in snapshot.services
    }
    planned = [
        PlannedServiceEntry(desired=d, action=classify(current_by_name.get(d.name), d))
        for d in desired
    ]
    return ClusterPlan(
        cluster_name=cluster_name,
        instance_identifiers=list(snapshot.instance_identifiers),
        current_services=list(snapshot.services),
        planned_services=planned,
    )


def resolve_clusters(config: PlanConfig, declared: List[str]) -> List[str]:
    """
    Clusters a planificar, en el orden pedido y sin duplicados.
    all_clusters → todos los declarados en el proyecto, ordenados por nombre.
    """
    if config.clusters.all_clusters:
        return sorted(declared)
    return list(dict.fromkeys(config.clusters.names))


def _build_one(
    cluster_name: str,
    config: PlanConfig,
    fetcher: StateFetcher,
    loader: DesiredStateLoader,
    declared: List[str],
    console: Optional[Console],
) -> ClusterPlan:
    if cluster_name not in declared:
        raise ValidationError(f"El cluster '{cluster_name}' no está declarado en {config.project_dir}")
    # Primero lo local: un servicio inexistente no debe costar una llamada remota
    desired = loader.load_desired_services(config.project_dir, cluster_name, dict(config.parameters))
    desired = select_service(desired, cluster_name, config.service)
    if console:
        console.print(f"[yellow]Consultando servicios del cluster '{cluster_name}'...[/yellow]")
    try:
        snapshot = fetcher.fetch_cluster_snapshot(cluster_name)
    except FormationError:
        raise
    except Exception as e:
        # Un fallo imprevisto del fetcher sigue siendo un fallo de ese cluster
        raise FetchError(cluster_name, f"{type(e).__name__}: {e}") from e
    return plan_cluster(cluster_name, snapshot, desired)


def build_plans(
    config: PlanConfig,
    fetcher: StateFetcher,
    loader: DesiredStateLoader,
    console: Optional[Console] = None,
) -> PlanRun:
    """
    Construye los planes de los clusters seleccionados.

    Args:
        config: configuración inmutable de la ejecución
        fetcher: obtiene el estado real (FetchError)
        loader: lee el estado deseado (ConfigError)
        console: si se pasa, muestra progreso; None = silencioso (modo JSON)

    Returns:
        PlanRun en el orden de clusters pedido.

    En modo fail_fast (un cluster o un servicio concreto) el primer error se propaga.
    Si no, cada cluster fallido queda en PlanRun.failures y el resto se planifica igual.
    """
    declared = loader.list_clusters(config.project_dir)
    clusters = resolve_clusters(config, declared)

    if config.fail_fast:
        plans = [_build_one(name, config, fetcher, loader, declared, console) for name in clusters]
        return PlanRun(plans=plans)

    workers = min(config.max_workers, max(len(clusters), 1))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            (name, pool.submit(_build_one, name, config, fetcher, loader, declared, console))
            for name in clusters
        ]

        plans: List[ClusterPlan] = []
        failures: List[ClusterFailure] = []
        # Se recorre en orden de petición, no de finalización
        for name, future in futures:
            try:
                plans.append(future.result())
            except (FetchError, ConfigError, ValidationError) as e:
                failures.append(ClusterFailure(
                    cluster_name=name,
                    error_type=type(e).__name__,
                    message=str(e),
                ))
                if console:
                    console.print(f"[red]❌ Cluster '{name}': {escape(str(e))}[/red]")

    return PlanRun(plans=plans, failures=failures)

