"""Command-line interface for predictkit."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from predictkit.modeling.prediction import Prediction

app = typer.Typer(
    name="predictkit",
    help="Train learners on tasks and inspect their predictions.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to run configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    ] = "WARNING",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit log events as JSON lines."),
    ] = False,
) -> None:
    """Configure logging for all commands."""
    from predictkit.utils.logging import configure_logging

    configure_logging(log_level, json_output=json_logs)


def _prediction_table(pred: "Prediction", n: int = 6) -> Table:
    head = pred.head(n)
    table = Table(title=f"Prediction ({pred.n_obs} observations, {pred.predict_type})")
    for col in head.columns:
        table.add_column(str(col), justify="right")
    for _, row in head.iterrows():
        cells = [f"{v:.3f}" if isinstance(v, float) else str(v) for v in row]
        table.add_row(*cells)
    return table


@app.command()
def run(
    config: ConfigOption,
    no_outputs: Annotated[
        bool,
        typer.Option("--no-outputs", help="Do not write predictions, plots or models."),
    ] = False,
    rows: Annotated[
        int,
        typer.Option("--rows", "-n", help="Number of prediction rows to show."),
    ] = 6,
) -> None:
    """Train a learner, predict the test rows and summarise the prediction."""
    from predictkit.config.loader import load_config
    from predictkit.evaluation.confusion import format_confusion_matrix
    from predictkit.pipeline import run_pipeline

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    try:
        run_config = load_config(config)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    try:
        result = run_pipeline(run_config, write_outputs=not no_outputs)
    except (KeyError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e
    except Exception as e:
        console.print(f"[red]Run failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[dim]{result.model}[/dim]")
    console.print()
    console.print(_prediction_table(result.prediction, rows))

    if result.prediction.threshold is not None:
        thr = ", ".join(f"{c}={v:.2f}" for c, v in result.prediction.threshold.items())
        console.print(f"[dim]Threshold: {thr}[/dim]")

    perf_table = Table(title="Test performance")
    perf_table.add_column("Measure", style="cyan")
    perf_table.add_column("Value", style="green")
    for name, value in result.performance.items():
        perf_table.add_row(name, f"{value:.4f}")
    console.print(perf_table)

    if result.confusion is not None:
        console.print(format_confusion_matrix(result.confusion))
        if result.confusion.relative:
            console.print(format_confusion_matrix(result.confusion, relative=True))

    if result.predictions_path:
        console.print(f"\n[green]Predictions saved to: {result.predictions_path}[/green]")
    if result.plot_path:
        console.print(f"[green]Plot saved to: {result.plot_path}[/green]")
    if result.model_path:
        console.print(f"[green]Model saved to: {result.model_path}[/green]")
    if result.run_id:
        console.print(f"[green]MLflow run: {result.run_id}[/green]")


@app.command()
def plot(
    config: ConfigOption,
    features: Annotated[
        str | None,
        typer.Option(
            "--features",
            "-f",
            help="Comma-separated feature names (1 or 2). Defaults to the config.",
        ),
    ] = None,
    cv: Annotated[
        int | None,
        typer.Option("--cv", help="CV folds for the title; 0 disables."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Image file to write."),
    ] = None,
) -> None:
    """Plot the predictions of the configured learner on one or two features."""
    from predictkit.config.loader import load_config
    from predictkit.learners.registry import make_learner
    from predictkit.pipeline import build_task
    from predictkit.visualization.learner_prediction import (
        plot_learner_prediction,
        save_figure,
    )

    try:
        run_config = load_config(config)
        plot_config = run_config.plot
        selected = (
            [f.strip() for f in features.split(",")] if features else plot_config.features
        )
        task = build_task(run_config)
        learner = make_learner(
            run_config.learner.id,
            predict_type=run_config.learner.predict_type,
            **run_config.learner.params,
        )
        fig = plot_learner_prediction(
            learner,
            task,
            features=selected,
            measures=run_config.measures,
            cv=plot_config.cv if cv is None else cv,
            gridsize=plot_config.gridsize,
            err_mark=plot_config.err_mark,
            seed=run_config.split.random_state,
        )
    except (KeyError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    if output is None:
        output = run_config.plots_dir / f"{task.id}_{learner.short_name}_prediction.png"
    save_figure(fig, output)
    console.print(f"[green]Plot saved to: {output}[/green]")


@app.command()
def learners(
    task_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Only learners for 'classif' or 'regr'."),
    ] = None,
) -> None:
    """List available learners and their properties."""
    from predictkit.learners.registry import LEARNER_REGISTRY, list_learners

    if task_type not in (None, "classif", "regr"):
        console.print(f"[red]Error: Invalid type '{task_type}'. Use 'classif' or 'regr'.[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Learners")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Properties", style="dim")
    for learner_id in list_learners(task_type):
        spec = LEARNER_REGISTRY[learner_id]
        table.add_row(learner_id, spec.name, ", ".join(sorted(spec.properties)))
    console.print(table)


@app.command()
def tasks() -> None:
    """List the bundled example tasks."""
    from predictkit.tasks.examples import list_tasks

    table = Table(title="Example tasks")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for name, description in list_tasks().items():
        table.add_row(name, description)
    console.print(table)


if __name__ == "__main__":
    app()
