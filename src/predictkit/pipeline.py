"""
Train/predict/evaluate pipeline driven by a RunConfig.

Builds the task, splits it into training and test rows, trains the
learner, predicts the test rows and summarises the prediction.
"""

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from sklearn.model_selection import train_test_split

from predictkit.config.settings import RunConfig, SplitConfig
from predictkit.evaluation.confusion import ConfusionMatrix, calculate_confusion_matrix
from predictkit.evaluation.measures import performance
from predictkit.learners.registry import make_learner
from predictkit.modeling.prediction import Prediction, predict
from predictkit.modeling.threshold import set_threshold
from predictkit.modeling.training import WrappedModel, save_model, train
from predictkit.tasks.core import Task, load_task_from_csv
from predictkit.tasks.examples import load_task
from predictkit.utils.logging import get_logger, log_context

log = get_logger(__name__)


@dataclass
class RunResult:
    """
    Outputs of a pipeline run.

    Attributes:
        task: Task the run used.
        model: Model trained on the training rows.
        prediction: Prediction of the test rows (threshold applied).
        performance: Test performance measures.
        confusion: Confusion matrix (classification only).
        train_rows: Task rows used for training.
        test_rows: Task rows predicted.
        predictions_path: Saved prediction table.
        plot_path: Saved learner prediction plot, if any.
        model_path: Saved model file, if any.
        run_id: MLflow run id, if tracked.
    """

    task: Task
    model: WrappedModel
    prediction: Prediction
    performance: dict[str, float]
    confusion: ConfusionMatrix | None
    train_rows: list[int]
    test_rows: list[int]
    predictions_path: Path | None = None
    plot_path: Path | None = None
    model_path: Path | None = None
    run_id: str | None = None
    artifacts: list[Path] = field(default_factory=list)


def build_task(config: RunConfig) -> Task:
    """Load the bundled task or the CSV task named in the config."""
    task_config = config.task
    if task_config.name is not None:
        return load_task(task_config.name)
    return load_task_from_csv(
        task_config.path,  # type: ignore[arg-type]
        target=task_config.target,  # type: ignore[arg-type]
        task_type=task_config.type,  # type: ignore[arg-type]
        positive=task_config.positive,
    )


def split_rows(task: Task, split: SplitConfig) -> tuple[list[int], list[int]]:
    """
    Split task rows into training and test positions.

    'alternate' trains on rows 0, 2, 4, ... and tests on 1, 3, 5, ...
    """
    rows = np.arange(task.n_obs)
    if split.method == "alternate":
        return rows[::2].tolist(), rows[1::2].tolist()

    stratify = None
    if split.stratify and task.task_type == "classif":
        stratify = task.get_target().astype(str).to_numpy()
    train_rows, test_rows = train_test_split(
        rows,
        test_size=split.test_size,
        random_state=split.random_state,
        stratify=stratify,
    )
    return sorted(train_rows.tolist()), sorted(test_rows.tolist())


def run_pipeline(
    config: RunConfig,
    *,
    write_outputs: bool = True,
) -> RunResult:
    """
    Run train, predict and evaluate as configured.

    Args:
        config: Run configuration.
        write_outputs: Write prediction table, plot and model file to the
            output directory.

    Returns:
        RunResult.
    """
    task = build_task(config)
    learner = make_learner(
        config.learner.id,
        predict_type=config.learner.predict_type,
        **config.learner.params,
    )

    with log_context(project=config.project, task=task.id, learner=learner.id):
        train_rows, test_rows = split_rows(task, config.split)
        log.info("Split task", n_train=len(train_rows), n_test=len(test_rows))

        model = train(learner, task, subset=train_rows)
        pred = predict(model, task=task, subset=test_rows)
        if config.threshold is not None:
            pred = set_threshold(pred, config.threshold)

        perf = performance(pred, config.measures)
        confusion = None
        if task.task_type == "classif":
            confusion = calculate_confusion_matrix(
                pred,
                relative=config.confusion.relative,
                sums=config.confusion.sums,
            )

        result = RunResult(
            task=task,
            model=model,
            prediction=pred,
            performance=perf,
            confusion=confusion,
            train_rows=train_rows,
            test_rows=test_rows,
        )

        if write_outputs:
            _write_outputs(config, result)

        if config.tracking.enabled:
            from predictkit.evaluation.tracking import track_run

            result.run_id = track_run(
                config, model, perf, confusion=confusion, artifacts=result.artifacts
            )

        log.info("Run complete", **perf)
    return result


def _write_outputs(config: RunConfig, result: RunResult) -> None:
    config.predictions_dir.mkdir(parents=True, exist_ok=True)
    name = f"{result.task.id}_{result.model.learner.short_name}"

    path = config.predictions_dir / f"{name}_predictions.csv"
    result.prediction.data.to_csv(path, index=False)
    result.predictions_path = path
    result.artifacts.append(path)
    log.info("Saved predictions", path=str(path), n_rows=result.prediction.n_obs)

    if config.plot.enabled:
        from predictkit.visualization.learner_prediction import (
            plot_learner_prediction,
            save_figure,
        )

        fig = plot_learner_prediction(
            result.model.learner,
            result.task,
            features=config.plot.features,
            measures=config.measures,
            cv=config.plot.cv,
            gridsize=config.plot.gridsize,
            err_mark=config.plot.err_mark,
            seed=config.split.random_state,
        )
        result.plot_path = save_figure(fig, config.plots_dir / f"{name}_prediction.png")
        result.artifacts.append(result.plot_path)

    if config.output.save_model:
        result.model_path = save_model(result.model, config.models_dir / f"{name}.joblib")
