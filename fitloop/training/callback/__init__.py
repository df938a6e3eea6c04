"""Callbacks shipped with fitloop.

Submodules implement progress tracking, recording, progress bars, gradient
clipping, early stopping and hyper-parameter scheduling.
"""

from .early_stopping import EarlyStopper
from .gradient_clipping import GradientClipper
from .progress import ProgressCallback
from .recorder import Recorder
from .scheduler import (
    ParamScheduler,
    sched_const,
    sched_cos,
    sched_exp,
    sched_lin,
)
from .train_eval import TrainEvalCallback

__all__ = [
    "EarlyStopper",
    "GradientClipper",
    "ParamScheduler",
    "ProgressCallback",
    "Recorder",
    "TrainEvalCallback",
    "sched_const",
    "sched_cos",
    "sched_exp",
    "sched_lin",
]
