"""
State Fetcher sobre Amazon ECS (boto3).

Lee instancias, servicios y scalable targets de un cluster y los convierte
en los modelos del core. Reintentos/throttling: configuración de botocore.
Cualquier error de AWS (o una respuesta que no se puede convertir) se traduce a FetchError.
Las referencias se normalizan a la forma del YAML: task definition como
family:revision y roles IAM por nombre.
"""

from typing import Any, Dict, Iterable, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from formation.core.errors import FetchError
from formation.core.service.models import (
    AutoScalingState,
    ClusterSnapshot,
    CurrentServiceEntry,
    CurrentServiceState,
    LoadBalancerBinding,
    PlacementConstraintRule,
    PlacementStrategyRule,
    role_name,
    task_definition_ref,
)


# Límites de la API
DESCRIBE_SERVICES_BATCH = 10
DESCRIBE_SCALABLE_TARGETS_BATCH = 50

SCALABLE_DIMENSION = "ecs:service:DesiredCount"


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def resource_id(cluster_name: str, service_name: str) -> str:
    """ResourceId de Application Auto Scaling para un servicio ECS."""
    return f"service/{cluster_name}/{service_name}"


def convert_service(raw: Dict[str, Any]) -> CurrentServiceState:
    """Respuesta de describe_services → CurrentServiceState."""
    deployment = raw.get("deploymentConfiguration") or {}
    return CurrentServiceState(
        service_name=raw["serviceName"],
        service_arn=raw["serviceArn"],
        status=raw["status"],
        task_definition=task_definition_ref(raw["taskDefinition"]),
        desired_count=raw.get("desiredCount", 0),
        pending_count=raw.get("pendingCount", 0),
        running_count=raw.get("runningCount", 0),
        minimum_healthy_percent=deployment.get("minimumHealthyPercent"),
        maximum_percent=deployment.get("maximumPercent"),
        role=role_name(raw.get("roleArn")),
        load_balancers=[
            LoadBalancerBinding(
                target_ref=lb.get("loadBalancerName") or lb.get("targetGroupArn"),
                container_name=lb["containerName"],
                container_port=lb["containerPort"],
            )
            for lb in raw.get("loadBalancers", [])
        ],
        placement_strategy=[
            PlacementStrategyRule(type=ps["type"], field=ps.get("field"))
            for ps in raw.get("placementStrategy", [])
        ],
        placement_constraints=[
            PlacementConstraintRule(type=pc["type"], expression=pc.get("expression"))
            for pc in raw.get("placementConstraints", [])
        ],
    )


def convert_scalable_target(raw: Dict[str, Any]) -> AutoScalingState:
    """Respuesta de describe_scalable_targets → AutoScalingState."""
    return AutoScalingState(
        resource_id=raw["ResourceId"],
        min_capacity=raw["MinCapacity"],
        max_capacity=raw["MaxCapacity"],
        role=role_name(raw.get("RoleARN")),
    )


class EcsStateFetcher:
    """Obtiene el snapshot de un cluster ECS. Solo lectura."""

    def __init__(
        self,
        region: Optional[str] = None,
        session: Optional[Any] = None,
        max_attempts: int = 10,
        ecs_client: Optional[Any] = None,
        autoscaling_client: Optional[Any] = None,
    ):
        self.region = region
        self._config = Config(retries={"max_attempts": max_attempts, "mode": "adaptive"})
        # Clientes creados aquí y no en el primer fetch: la sesión de boto3 no es
        # thread-safe y los fetch corren en paralelo
        if ecs_client is None or autoscaling_client is None:
            session = session or boto3.Session()
            if ecs_client is None:
                ecs_client = session.client("ecs", region_name=region, config=self._config)
            if autoscaling_client is None:
                autoscaling_client = session.client(
                    "application-autoscaling", region_name=region, config=self._config
                )
        self._ecs_client = ecs_client
        self._autoscaling_client = autoscaling_client

    def fetch_cluster_snapshot(self, cluster_name: str) -> ClusterSnapshot:
        try:
            instances = self._list_container_instances(cluster_name)
            services = self._describe_services(cluster_name)
            targets = self._describe_scalable_targets(
                cluster_name, [s.service_name for s in services]
            )
        except (ClientError, BotoCoreError) as e:
            raise FetchError(cluster_name, e) from e
        except (KeyError, TypeError, ValueError) as e:
            # Respuesta inesperada (campo ausente o fuera de esquema)
            raise FetchError(cluster_name, f"Respuesta no reconocida: {type(e).__name__}: {e}") from e

        return ClusterSnapshot(
            instance_identifiers=instances,
            services=[
                CurrentServiceEntry(
                    service=s,
                    auto_scaling=targets.get(resource_id(cluster_name, s.service_name)),
                )
                for s in services
            ],
        )

    def _list_container_instances(self, cluster_name: str) -> List[str]:
        arns: List[str] = []
        paginator = self._ecs_client.get_paginator("list_container_instances")
        for page in paginator.paginate(cluster=cluster_name):
            arns.extend(page.get("containerInstanceArns", []))
        return arns

    def _describe_services(self, cluster_name: str) -> List[CurrentServiceState]:
        service_arns: List[str] = []
        paginator = self._ecs_client.get_paginator("list_services")
        for page in paginator.paginate(cluster=cluster_name):
            service_arns.extend(page.get("serviceArns", []))

        services: List[CurrentServiceState] = []
        for batch in _chunks(service_arns, DESCRIBE_SERVICES_BATCH):
            response = self._ecs_client.describe_services(cluster=cluster_name, services=batch)
            failures = response.get("failures") or []
            if failures:
                first = failures[0]
                raise FetchError(
                    cluster_name,
                    f"describe_services: {first.get('reason', 'unknown')}",
                    service=first.get("arn"),
                )
            services.extend(convert_service(raw) for raw in response.get("services", []))
        return services

    def _describe_scalable_targets(self, cluster_name: str, service_names: List[str]) -> Dict[str, AutoScalingState]:
        ids = [resource_id(cluster_name, name) for name in service_names]
        targets: Dict[str, AutoScalingState] = {}
        for batch in _chunks(ids, DESCRIBE_SCALABLE_TARGETS_BATCH):
            response = self._autoscaling_client.describe_scalable_targets(
                ServiceNamespace="ecs",
                ResourceIds=batch,
                ScalableDimension=SCALABLE_DIMENSION,
            )
            for raw in response.get("ScalableTargets", []):
                state = convert_scalable_target(raw)
                targets[state.resource_id] = state
        return targets
