"""formation: planificador declarativo de servicios Amazon ECS."""

__version__ = "1.0.0"
