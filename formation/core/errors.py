"""
Errores del planificador.

El core solo define excepciones; las capas (CLI/API) se encargan del formato de salida.
"""

from pathlib import Path
from typing import Optional, Union


class FormationError(Exception):
    """Error base de formation."""
    pass


class ValidationError(FormationError):
    """La petición referencia un cluster/servicio que no existe en la configuración deseada."""
    pass


class ConfigError(FormationError):
    """Configuración deseada inválida (archivo faltante, YAML o esquema inválido)."""

    def __init__(self, path: Union[str, Path], cause: Union[str, Exception]):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{self.path}: {cause}")


class FetchError(FormationError):
    """Fallo al obtener el estado real del cluster (red, permisos, throttling agotado)."""

    def __init__(self, cluster: str, cause: Union[str, Exception], service: Optional[str] = None):
        self.cluster = cluster
        self.cause = cause
        self.service = service
        target = f"{cluster}/{service}" if service else cluster
        super().__init__(f"{target}: {cause}")
