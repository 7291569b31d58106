"""
MLflow run tracking.

Logs the learner configuration, performance measures and the confusion
matrix of a run.
"""

import tempfile
from pathlib import Path
from typing import Any

import mlflow

from predictkit.config.settings import RunConfig
from predictkit.evaluation.confusion import ConfusionMatrix
from predictkit.modeling.training import WrappedModel
from predictkit.utils.logging import get_logger

log = get_logger(__name__)


def _flatten_params(model: WrappedModel) -> dict[str, Any]:
    params: dict[str, Any] = {
        "learner": model.learner.id,
        "predict_type": model.learner.predict_type,
        "task": model.task_desc.id,
        "n_features": len(model.features),
        "n_train": model.n_train if model.n_train is not None else "all",
    }
    for key, value in model.learner.params.items():
        params[f"param.{key}"] = value
    return params


def track_run(
    config: RunConfig,
    model: WrappedModel,
    performance: dict[str, float],
    confusion: ConfusionMatrix | None = None,
    artifacts: list[Path] | None = None,
) -> str:
    """
    Log a finished run to MLflow.

    Args:
        config: Run configuration (tracking URI and experiment name).
        model: Trained model.
        performance: Test performance measures.
        confusion: Optional confusion matrix, logged as CSV artifact.
        artifacts: Extra files to attach (plots, prediction tables).

    Returns:
        MLflow run id.
    """
    mlflow.set_tracking_uri(config.tracking.tracking_uri)
    mlflow.set_experiment(config.experiment_name)

    tags = {
        "project": config.project,
        "task_type": model.task_desc.task_type,
    }
    with mlflow.start_run(run_name=f"{model.learner.id}-{model.task_desc.id}", tags=tags) as run:
        mlflow.log_params(_flatten_params(model))
        mlflow.log_metrics({k: float(v) for k, v in performance.items()})
        mlflow.log_metric("time_train", model.time_train)

        if confusion is not None:
            with tempfile.TemporaryDirectory() as tmp:
                path = Path(tmp) / "confusion_matrix.csv"
                confusion.result.to_csv(path)
                mlflow.log_artifact(str(path))

        for artifact in artifacts or []:
            mlflow.log_artifact(str(artifact))

        run_id = run.info.run_id

    log.info(
        "Logged MLflow run",
        run_id=run_id,
        experiment=config.experiment_name,
        tracking_uri=config.tracking.tracking_uri,
    )
    return run_id
