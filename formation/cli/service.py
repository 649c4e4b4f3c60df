#!/usr/bin/env python3
"""
Módulo Service - formation
Planificación de servicios ECS: estado deseado (service/<cluster>.yml) vs estado real.
"""

from pathlib import Path
from typing import Dict, List, Optional

import typer
from botocore.exceptions import BotoCoreError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from formation.cli.report import render, render_failures, render_human
from formation.core.errors import FormationError, ValidationError
from formation.core.infra.contracts import DesiredStateLoader, StateFetcher
from formation.core.runtime.resolver import project_dir as resolve_project_dir
from formation.core.service.config import ClusterSelector, OutputMode, PlanConfig, parse_key_values
from formation.core.service.planner import PlanRun, build_plans
from formation.providers.ecs import EcsStateFetcher
from formation.providers.project import ProjectLoader

app = typer.Typer(
    name="service",
    help="Gestión de servicios ECS (plan)",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


class PlanOutcome:
    """Resultado de run_plan: planes + fallos; la salida se renderiza bajo demanda."""
    def __init__(self, run: PlanRun, mode: OutputMode):
        self.run = run
        self.mode = mode

    @property
    def output(self) -> str:
        return render(self.run.plans, self.mode)

    @property
    def ok(self) -> bool:
        return self.run.ok


def run_plan(
    config: PlanConfig,
    fetcher: StateFetcher,
    loader: DesiredStateLoader,
    console: Optional[Console] = None,
) -> PlanOutcome:
    """
    Punto de entrada para la capa de comandos.
    En modo JSON nunca se escribe progreso (la consola se ignora).
    Lanza FormationError en ejecuciones fail_fast.
    """
    progress = console if config.output == OutputMode.HUMAN else None
    run = build_plans(config, fetcher, loader, console=progress)
    return PlanOutcome(run, config.output)


def build_config(
    clusters: List[str],
    all_clusters: bool,
    service: Optional[str],
    parameters: List[str],
    json_output: bool,
    project_dir: Optional[Path],
    workers: int,
) -> PlanConfig:
    """Valida las opciones de la CLI y arma la PlanConfig inmutable."""
    if not clusters and not all_clusters:
        raise ValidationError("Debe indicarse '-c CLUSTER' o '--all-clusters'")
    if clusters and all_clusters:
        raise ValidationError("'-c' y '--all-clusters' son excluyentes")
    params: Dict[str, str] = parse_key_values(parameters)
    return PlanConfig(
        project_dir=resolve_project_dir(project_dir),
        clusters=ClusterSelector(names=list(clusters), all_clusters=all_clusters),
        service=service or None,
        output=OutputMode.JSON if json_output else OutputMode.HUMAN,
        parameters=params,
        max_workers=workers,
    )


@app.command()
def plan(
    cluster: Optional[List[str]] = typer.Option(None, "--cluster", "-c", help="Cluster ECS (repetible)"),
    all_clusters: bool = typer.Option(False, "--all-clusters", help="Todos los clusters declarados en el proyecto"),
    service: Optional[str] = typer.Option(None, "--service", "-s", help="Servicio ECS concreto"),
    parameter: Optional[List[str]] = typer.Option(None, "--parameter", "-p", help="Parámetro 'key=value' (repetible)"),
    json_output: bool = typer.Option(False, "--json-output", "-j", help="Salida JSON"),
    project_dir: Optional[Path] = typer.Option(None, "--project-dir", help="Directorio del proyecto (default: FORMATION_PROJECT_DIR o cwd)"),
    region: Optional[str] = typer.Option(None, "--region", help="Región AWS (default: AWS_REGION)"),
    workers: int = typer.Option(4, "--workers", min=1, help="Clusters consultados en paralelo"),
):
    """
    Muestra qué cambiaría en los servicios sin aplicar nada

    Ejemplos:
        formation service plan -c prod-cluster                # Todos los servicios del cluster
        formation service plan -c prod-cluster -s web         # Solo el servicio web
        formation service plan --all-clusters -j              # JSON de todos los clusters
        formation service plan -c prod -p env=prod -p tag=v2  # Con parámetros ${env} ${tag}
    """
    try:
        config = build_config(
            cluster or [], all_clusters, service, parameter or [], json_output, project_dir, workers,
        )
    except (FormationError, ValueError) as e:
        err_console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    human = config.output == OutputMode.HUMAN
    if human:
        console.print(Panel.fit("[bold cyan]Plan de servicios ECS[/bold cyan]", border_style="cyan"))
        console.print(f"[dim]Proyecto: {escape(str(config.project_dir))}[/dim]")

    try:
        fetcher = EcsStateFetcher(region=region)
    except BotoCoreError as e:
        # Sin región o credenciales configuradas
        err_console.print(f"[red]❌ AWS: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    try:
        outcome = run_plan(config, fetcher, ProjectLoader(), console=console)
    except FormationError as e:
        err_console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if human:
        console.print(render_human(outcome.run.plans))
    else:
        typer.echo(outcome.output)

    failures = render_failures(outcome.run.failures)
    if failures is not None:
        err_console.print(failures)
        raise typer.Exit(code=1)

    if human:
        console.print("[green]✅ Plan generado. No se aplicó ningún cambio.[/green]")
