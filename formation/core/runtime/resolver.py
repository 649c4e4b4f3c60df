"""
Resolución del directorio de proyecto.

- project_dir(): directorio donde vive la configuración deseada (service/<cluster>.yml).

El core NO lee disco aquí; solo decide qué Path usar. Quién lee (providers)
recibe este Path dentro de PlanConfig.
"""

import os
from pathlib import Path
from typing import Optional


# Subdirectorio con un YAML por cluster
SERVICE_DIR_NAME = "service"

PROJECT_DIR_ENV = "FORMATION_PROJECT_DIR"


def project_dir(explicit: Optional[Path] = None, cwd: Optional[Path] = None) -> Path:
    """
    Directorio base del proyecto.
    Resolución: argumento explícito → FORMATION_PROJECT_DIR → primer ancestro
    de cwd que contenga service/ → cwd.
    """
    if explicit is not None:
        return Path(explicit).expanduser().resolve()

    env_value = os.environ.get(PROJECT_DIR_ENV, "").strip()
    if env_value:
        return Path(env_value).expanduser().resolve()

    start = (cwd or Path.cwd()).resolve()
    for d in [start] + list(start.parents):
        if (d / SERVICE_DIR_NAME).is_dir():
            return d
    return start


def service_dir(base: Path) -> Path:
    """Directorio con las definiciones de servicios por cluster."""
    return base / SERVICE_DIR_NAME
