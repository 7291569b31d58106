"""
Predict walkthrough.

Question: What does predicting with a trained learner give us, and how do
we look at it?

Runs, in order: regression predictions on a holdout with standard errors,
classification with probabilities, confusion matrices, threshold changes
on a binary task and learner prediction plots.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

from rich.console import Console

from predictkit.evaluation.confusion import (
    calculate_confusion_matrix,
    format_confusion_matrix,
)
from predictkit.evaluation.measures import performance
from predictkit.learners import make_learner
from predictkit.modeling.prediction import (
    get_prediction_probabilities,
    get_prediction_se,
    predict,
)
from predictkit.modeling.threshold import set_threshold
from predictkit.modeling.training import train
from predictkit.tasks import load_task
from predictkit.utils.logging import configure_logging
from predictkit.visualization.learner_prediction import (
    plot_learner_prediction,
    save_figure,
)

console = Console()


def regression_walkthrough() -> None:
    """Train on every other row, predict the rest, read standard errors."""
    task = load_task("diabetes")
    n = task.n_obs
    train_set = list(range(0, n, 2))
    test_set = list(range(1, n, 2))

    console.rule("Regression: predict on a task subset")
    model = train(make_learner("regr.rpart"), task, subset=train_set)
    pred = predict(model, task=task, subset=test_set)
    console.print(str(pred))

    console.rule("Regression: predict on new data")
    newdata = task.get_data(test_set, target_extra=False)
    console.print(str(predict(model, newdata=newdata)))

    console.rule("Regression: standard errors")
    lm = make_learner("regr.lm", predict_type="se")
    model = train(lm, task, subset=train_set)
    pred = predict(model, task=task, subset=test_set)
    console.print(pred.head())
    console.print(get_prediction_se(pred).describe())
    console.print(performance(pred, ["mse", "rsq"]))


def classification_walkthrough() -> None:
    """Probabilities, confusion matrices and thresholds."""
    iris = load_task("iris")
    console.rule("Classification: probabilities")
    learner = make_learner("classif.rpart", predict_type="prob")
    model = train(learner, iris)
    pred = predict(model, newdata=iris.get_data())
    console.print(get_prediction_probabilities(pred).head())
    console.print(get_prediction_probabilities(pred, ["setosa", "virginica"]).head())

    console.rule("Classification: confusion matrix")
    lda_model = train(make_learner("classif.lda"), iris)
    lda_pred = predict(lda_model, task=iris)
    console.print(format_confusion_matrix(calculate_confusion_matrix(lda_pred)))
    cm = calculate_confusion_matrix(lda_pred, relative=True, sums=True)
    console.print(format_confusion_matrix(cm))
    console.print(format_confusion_matrix(cm, relative=True))
    console.print(f"Relative error: {cm.relative_error:.3f}")

    console.rule("Binary classification: thresholds")
    bc = load_task("bc")
    model = train(make_learner("classif.rpart", predict_type="prob"), bc)
    pred = predict(model, task=bc)
    console.print(f"Threshold: {pred.threshold}")
    console.print(format_confusion_matrix(calculate_confusion_matrix(pred)))
    pred_09 = set_threshold(pred, 0.9)
    console.print(f"Threshold: {pred_09.threshold}")
    console.print(format_confusion_matrix(calculate_confusion_matrix(pred_09)))

    console.rule("Multiclass thresholds")
    iris_pred = predict(train(learner, iris), task=iris)
    weighted = set_threshold(iris_pred, {"setosa": 0.01, "versicolor": 50, "virginica": 1})
    console.print(weighted.data["response"].value_counts())


def plot_walkthrough(output_dir: Path) -> None:
    """1D/2D learner prediction plots."""
    console.rule("Learner prediction plots")
    iris = load_task("iris")
    fig = plot_learner_prediction(
        make_learner("classif.rpart", predict_type="prob"),
        iris,
        features=["petal_length", "petal_width"],
        seed=1,
    )
    save_figure(fig, output_dir / "iris_rpart_2d.png")

    fig = plot_learner_prediction(
        make_learner("classif.lda"), iris, features=["petal_length"], seed=1
    )
    save_figure(fig, output_dir / "iris_lda_1d.png")

    diabetes = load_task("diabetes")
    fig = plot_learner_prediction(
        make_learner("regr.lm", predict_type="se"), diabetes, features=["bmi"], seed=1
    )
    save_figure(fig, output_dir / "diabetes_lm_1d.png")

    fig = plot_learner_prediction(
        make_learner("regr.kknn"), diabetes, features=["bmi", "bp"], cv=0
    )
    save_figure(fig, output_dir / "diabetes_kknn_2d.png")
    console.print(f"[green]Plots written to {output_dir}[/green]")


def run_walkthrough(output_dir: Path = Path("./output/walkthrough")) -> None:
    """Run all parts of the walkthrough."""
    configure_logging("WARNING")
    regression_walkthrough()
    classification_walkthrough()
    plot_walkthrough(output_dir)


if __name__ == "__main__":
    run_walkthrough()
