"""
Service: modelos, clasificación y planificación de servicios ECS.

Lógica pura; sin red, sin disco ni dependencias de CLI o providers.
"""

from formation.core.service import models
from formation.core.service.classifier import classify
from formation.core.service.config import ClusterSelector, OutputMode, PlanConfig, parse_key_values
from formation.core.service.planner import ClusterFailure, PlanRun, build_plans, plan_cluster

ClusterPlan = models.ClusterPlan
DesiredServiceSpec = models.DesiredServiceSpec
CurrentServiceEntry = models.CurrentServiceEntry

__all__ = [
    "ClusterPlan",
    "DesiredServiceSpec",
    "CurrentServiceEntry",
    "ClusterSelector",
    "OutputMode",
    "PlanConfig",
    "ClusterFailure",
    "PlanRun",
    "classify",
    "build_plans",
    "plan_cluster",
    "parse_key_values",
]
