"""
Typed configuration models using Pydantic.

A run configuration names the task, the learner and how the data is split,
thresholded, summarised and plotted.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TaskConfig(BaseModel):
    """Task selection: a bundled example task or a CSV file."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Bundled task name (e.g. 'iris')")
    path: Path | None = Field(default=None, description="CSV file with the task data")
    target: str | None = Field(default=None, description="Target column of the CSV")
    type: Literal["classif", "regr"] | None = Field(
        default=None, description="Task type of the CSV data"
    )
    positive: str | None = Field(default=None, description="Positive class (binary)")

    @model_validator(mode="after")
    def check_source(self) -> "TaskConfig":
        """Exactly one of name or path; path needs target and type."""
        if (self.name is None) == (self.path is None):
            msg = "Task config needs either 'name' or 'path'"
            raise ValueError(msg)
        if self.path is not None and (self.target is None or self.type is None):
            msg = "Task config with 'path' needs 'target' and 'type'"
            raise ValueError(msg)
        return self


class LearnerConfig(BaseModel):
    """Learner id, predict type and hyperparameters."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Learner id, e.g. 'classif.lda'")
    predict_type: Literal["response", "prob", "se"] = Field(default="response")
    params: dict[str, Any] = Field(default_factory=dict, description="Hyperparameters")


class SplitConfig(BaseModel):
    """
    Train/test split.

    'random' draws a (stratified) holdout of test_size; 'alternate' trains
    on every other row and tests on the rest.
    """

    model_config = ConfigDict(frozen=True)

    method: Literal["random", "alternate"] = Field(default="random")
    test_size: float = Field(default=1 / 3, gt=0.0, lt=1.0)
    random_state: int = Field(default=1337)
    stratify: bool = Field(default=True)


class ConfusionConfig(BaseModel):
    """Confusion matrix options."""

    model_config = ConfigDict(frozen=True)

    relative: bool = Field(default=False)
    sums: bool = Field(default=False)


class PlotConfig(BaseModel):
    """Learner prediction plot options."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False)
    features: list[str] | None = Field(default=None, description="1 or 2 features")
    cv: int = Field(default=10, ge=0, description="CV folds for the title; 0 disables")
    gridsize: int | None = Field(default=None, ge=2)
    err_mark: Literal["train", "cv", "none"] = Field(default="train")

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: list[str] | None) -> list[str] | None:
        """Plots show one or two features."""
        if v is not None and len(v) not in (1, 2):
            msg = f"Plot needs 1 or 2 features, got {len(v)}"
            raise ValueError(msg)
        return v


class TrackingConfig(BaseModel):
    """MLflow experiment tracking configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False)
    tracking_uri: str = Field(default="http://127.0.0.1:5000")
    experiment_name: str | None = Field(
        default=None, description="MLflow experiment name (defaults to project name)"
    )


class OutputConfig(BaseModel):
    """
    Output paths configuration.

    Structure: ./output/{project}/predictions, ./output/{project}/plots, ...
    """

    model_config = ConfigDict(frozen=True)

    output_root: Path = Field(default=Path("./output"))
    save_model: bool = Field(default=False)


class RunConfig(BaseModel):
    """Complete configuration of a train/predict/evaluate run."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g. 'iris-lda')")
    task: TaskConfig
    learner: LearnerConfig
    split: SplitConfig = Field(default_factory=SplitConfig)
    threshold: float | dict[str, float] | None = Field(default=None)
    measures: list[str] | None = Field(default=None)
    confusion: ConfusionConfig = Field(default_factory=ConfusionConfig)
    plot: PlotConfig = Field(default_factory=PlotConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @property
    def experiment_name(self) -> str:
        """MLflow experiment name (derived from project if not set)."""
        return self.tracking.experiment_name or self.project

    @property
    def predictions_dir(self) -> Path:
        """Path to predictions output directory."""
        return self.output.output_root / self.project / "predictions"

    @property
    def plots_dir(self) -> Path:
        """Path to plots output directory."""
        return self.output.output_root / self.project / "plots"

    @property
    def models_dir(self) -> Path:
        """Path to saved models directory."""
        return self.output.output_root / self.project / "models"
