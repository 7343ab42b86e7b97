"""CLI commands for soil classification, checklist and reference catalog."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from sibcs_classifier.checklist import list_checklist_questions, questions_for_order
from sibcs_classifier.engine import ClassificationService
from sibcs_classifier.loaders import load_layer_table, load_request
from sibcs_classifier.logging_config import get_logger, setup_cli_logging
from sibcs_classifier.models import ClassificationOutcome, SoilOrder
from sibcs_classifier.reference import find_order_profile, list_order_profiles

logger = get_logger(__name__)
console = Console()

ORDER_CHOICES = [order.value for order in SoilOrder.classified()]


def _dump_json(data: object) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _print_outcome(outcome: ClassificationOutcome) -> None:
    response = outcome.response
    primary = response.result.primary

    summary = Table(title="Classificação SiBCS", show_header=False)
    summary.add_column("Campo", style="bold")
    summary.add_column("Valor")
    summary.add_row("Ordem", primary.order.value)
    summary.add_row("Subordem sugerida", primary.suborder_hint or "-")
    summary.add_row("Confiança", f"{primary.confidence}%")
    summary.add_row("Modo", primary.mode.value)
    summary.add_row("Explicação", primary.explanation_short)
    metrics = response.audit.derived_metrics
    summary.add_row("Camada de referência", metrics.layer_used_for_bt or "-")
    summary.add_row("V% / m%", f"{metrics.v_percent} / {metrics.m_percent}")
    summary.add_row("Mudança textural abrupta", str(metrics.abrupt_textural_change))
    console.print(summary)

    if response.alternatives:
        alternatives = Table(title="Alternativas")
        alternatives.add_column("Ordem", style="bold")
        alternatives.add_column("Confiança", justify="right")
        alternatives.add_column("Por que compete")
        for alt in response.alternatives:
            alternatives.add_row(alt.order.value, f"{alt.confidence}%", alt.why_competes)
        console.print(alternatives)

    if response.agronomic_alerts:
        alerts = Table(title="Alertas agronômicos")
        alerts.add_column("Tipo")
        alerts.add_column("Severidade")
        alerts.add_column("Mensagem")
        for alert in response.agronomic_alerts:
            style = "red" if alert.severity.value == "high" else "yellow"
            alerts.add_row(
                alert.type.value, f"[{style}]{alert.severity.value}[/{style}]", alert.message
            )
        console.print(alerts)

    if response.next_steps:
        steps = Table(title="Próximos passos")
        steps.add_column("Ação", style="dim")
        steps.add_column("O quê")
        for step in response.next_steps:
            steps.add_row(step.action.value, step.what)
        console.print(steps)

    for warning in outcome.validation.warnings:
        console.print(f"[yellow]Aviso:[/yellow] {warning}")


@click.command()
@click.argument("request_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option(
    "--output", type=click.Path(path_type=Path), help="Write JSON result to file"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def classify(
    request_file: Path, output_format: str, output: Path | None, verbose: bool
) -> None:
    """Classify one soil profile.

    REQUEST_FILE: JSON or YAML classification request
    """
    setup_cli_logging(verbose)

    try:
        service = ClassificationService()
        outcome = service.classify(load_request(request_file))

        if output:
            output.write_text(_dump_json(outcome.to_json_dict()), encoding="utf-8")
            click.echo(f"Result written to {output}")
        elif output_format == "json":
            click.echo(_dump_json(outcome.to_json_dict()))
        else:
            _print_outcome(outcome)

    except Exception as e:
        logger.error(f"Error classifying {request_file}: {e}")
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e


@click.command()
@click.argument("layers_csv", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--field-file",
    type=click.Path(exists=True, path_type=Path),
    help="JSON/YAML mapping profile_id to field observations",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option(
    "--output", type=click.Path(path_type=Path), help="Write JSON results to file"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def batch(
    layers_csv: Path,
    field_file: Path | None,
    output_format: str,
    output: Path | None,
    verbose: bool,
) -> None:
    """Classify every profile of a CSV layer table.

    LAYERS_CSV: CSV with one row per layer and a profile_id column
    """
    setup_cli_logging(verbose)

    try:
        requests = load_layer_table(layers_csv, field_file)
        if not requests:
            click.echo("No profiles found in input file", err=True)
            raise click.Abort()

        service = ClassificationService()
        outcomes = service.classify_batch(requests.values())
        rows = [
            {"profile_id": profile_id, **outcome.to_json_dict()}
            for profile_id, outcome in zip(requests, outcomes, strict=True)
        ]

        if output:
            output.write_text(_dump_json(rows), encoding="utf-8")
            click.echo(f"Results written to {output}")
        elif output_format == "json":
            click.echo(_dump_json(rows))
        else:
            table = Table(title=f"Classificação de {len(rows)} perfis")
            table.add_column("Perfil", style="bold")
            table.add_column("Ordem")
            table.add_column("Confiança", justify="right")
            table.add_column("Modo")
            table.add_column("Válido")
            for profile_id, outcome in zip(requests, outcomes, strict=True):
                primary = outcome.response.result.primary
                table.add_row(
                    profile_id,
                    primary.order.value,
                    f"{primary.confidence}%",
                    primary.mode.value,
                    "sim" if outcome.validation.valid else "não",
                )
            console.print(table)

    except click.Abort:
        raise
    except Exception as e:
        logger.error(f"Error in batch classification: {e}")
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e


@click.command()
@click.option(
    "--order",
    type=click.Choice(ORDER_CHOICES, case_sensitive=False),
    help="Only questions that favor or penalize this order",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
def checklist(order: str | None, output_format: str) -> None:
    """List the field checklist questions."""
    questions = (
        questions_for_order(SoilOrder.parse(order))
        if order
        else list(list_checklist_questions())
    )

    if output_format == "json":
        click.echo(_dump_json([q.model_dump(mode="json") for q in questions]))
        return

    table = Table(title=f"Checklist de campo ({len(questions)} perguntas)")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Seção")
    table.add_column("Pergunta")
    table.add_column("Favorece")
    for question in questions:
        table.add_row(
            question.id,
            question.section,
            question.question,
            ", ".join(o.value for o in question.favors_orders) or "-",
        )
    console.print(table)


@click.command()
@click.option(
    "--order",
    type=click.Choice(ORDER_CHOICES, case_sensitive=False),
    help="Show the full reference profile of one order",
)
def orders(order: str | None) -> None:
    """Show the SiBCS order reference catalog."""
    if order:
        profile = find_order_profile(order)
        if profile is None:
            click.echo(f"Unknown order: {order}", err=True)
            raise click.Abort()

        table = Table(title=profile.order.value, show_header=False)
        table.add_column("Campo", style="bold")
        table.add_column("Valor")
        table.add_row("Critério diagnóstico", profile.diagnostic_criterion)
        table.add_row("Critério distintivo", profile.distinctive_criterion or "-")
        table.add_row("Horizonte diagnóstico", profile.diagnostic_horizon)
        table.add_row("Subordens", ", ".join(profile.suborders) or "-")
        table.add_row("Classe de profundidade", profile.depth_class.value)
        for name, reference in profile.ranges.items():
            if reference.raw:
                table.add_row(f"Faixa {name}", reference.raw)
        table.add_row("Fertilidade natural", profile.natural_fertility or "-")
        table.add_row("Limitações", "\n".join(profile.limitations) or "-")
        table.add_row("Manejo recomendado", "\n".join(profile.management) or "-")
        console.print(table)
        return

    table = Table(title="Ordens do SiBCS")
    table.add_column("Ordem", style="bold")
    table.add_column("Horizonte diagnóstico")
    table.add_column("Fertilidade natural")
    for profile in list_order_profiles():
        table.add_row(
            profile.order.value,
            profile.diagnostic_horizon,
            profile.natural_fertility or "-",
        )
    console.print(table)
