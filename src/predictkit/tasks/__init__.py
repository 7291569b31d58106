"""
Tasks: datasets bundled with their target and problem type.
"""

from predictkit.tasks.core import (
    ClassifTask,
    RegrTask,
    Task,
    TaskDesc,
    load_task_from_csv,
    make_classif_task,
    make_regr_task,
)
from predictkit.tasks.examples import list_tasks, load_task

__all__ = [
    "ClassifTask",
    "RegrTask",
    "Task",
    "TaskDesc",
    "list_tasks",
    "load_task",
    "load_task_from_csv",
    "make_classif_task",
    "make_regr_task",
]
