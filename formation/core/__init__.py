"""
Core: lógica de planificación pura.

ENFORCEMENT (arquitectura limpia):
- Este paquete NO debe importar: formation.cli, formation.providers.* (implementaciones),
  ni módulos que hagan red o lean el filesystem real (salvo resolver que solo devuelve Path).
- Permitido: typing, pathlib.Path, pydantic, rich.console.Console (solo progreso opcional),
  formation.core.* (errors, runtime, infra/contracts).
- Los providers y la CLI importan desde core; nunca al revés.
"""

from formation.core.errors import FormationError, ValidationError, ConfigError, FetchError

__all__ = ["FormationError", "ValidationError", "ConfigError", "FetchError"]
