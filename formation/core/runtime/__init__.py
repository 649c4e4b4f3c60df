"""
Runtime: resolución del directorio de proyecto.

La configuración deseada vive en <proyecto>/service/; el estado real en el control plane.
"""

from formation.core.runtime.resolver import project_dir, service_dir

__all__ = ["project_dir", "service_dir"]
