"""
Providers: implementaciones de los contratos del core.

- ecs: State Fetcher sobre Amazon ECS + Application Auto Scaling (boto3).
- project: Desired-State Loader sobre service/<cluster>.yml (PyYAML + pydantic).
"""

from formation.providers.ecs import EcsStateFetcher
from formation.providers.project import ProjectLoader

__all__ = ["EcsStateFetcher", "ProjectLoader"]
