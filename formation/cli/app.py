"""
Aplicación CLI de formation.

Solo compone submódulos y comandos; la lógica vive en core y providers.
"""

from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from formation import __version__
from formation.cli.service import app as service_app

# .env del directorio de trabajo (AWS_REGION, FORMATION_PROJECT_DIR, ...)
_ENV_FILE = Path.cwd() / ".env"
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE)

app = typer.Typer(
    name="formation",
    help="formation - Planificador declarativo de servicios Amazon ECS",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

app.add_typer(service_app, name="service", help="Gestión de servicios ECS")


@app.command()
def version():
    """Muestra la versión de formation"""
    console.print(Panel.fit(
        "[bold cyan]formation[/bold cyan]\n"
        "[dim]Planificador declarativo de servicios ECS[/dim]\n\n"
        f"[bold]Versión:[/bold] {__version__}\n"
        "[bold]Comandos:[/bold] service plan",
        border_style="cyan"
    ))


def main():
    app()
