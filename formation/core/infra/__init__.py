"""
Contratos de los colaboradores del planificador.

Los providers (ECS, proyecto YAML) implementan estos contratos;
el core no depende de ningún provider concreto. El executor (apply) queda fuera:
consume ClusterPlan y nunca ejecuta requires_recreate sin confirmación.
"""

from formation.core.infra.contracts import StateFetcher, DesiredStateLoader

__all__ = ["StateFetcher", "DesiredStateLoader"]
