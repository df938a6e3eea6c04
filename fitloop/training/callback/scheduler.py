import math
from typing import Callable, Dict

from fitloop.training.event.handler import Callback


def sched_lin(start: float, end: float) -> Callable[[float], float]:
    """Linear schedule from ``start`` to ``end``."""
    return lambda pos: start + pos * (end - start)


def sched_cos(start: float, end: float) -> Callable[[float], float]:
    """Cosine annealing from ``start`` to ``end``."""
    return lambda pos: start + (1 + math.cos(math.pi * (1 - pos))) * (end - start) / 2


def sched_exp(start: float, end: float) -> Callable[[float], float]:
    """Exponential schedule from ``start`` to ``end``, both must be positive."""
    return lambda pos: start * (end / start) ** pos


def sched_const(value: float) -> Callable[[float], float]:
    return lambda pos: value


class ParamScheduler(Callback):
    r"""
    Sets optimizer hyper-parameters at the beginning of every training
    batch, according to a schedule function of the training progress
    ``pct_train`` (see
    :class:`~fitloop.training.callback.train_eval.TrainEvalCallback`).

    Args:
        scheds (Dict[str, Callable[[float], float]]): mapping from
            hyper-parameter name (e.g. ``lr``, ``wd``) to schedule function

    Attributes:
        hps (Dict[str, List[float]]): the values set for each
            hyper-parameter, one per training batch
    """

    def __init__(self, scheds: Dict[str, Callable[[float], float]]):
        self.scheds = scheds
        self.hps = {name: [] for name in scheds}

    def begin_fit(self, learner):
        self.hps = {name: [] for name in self.scheds}

    def begin_batch(self, learner):
        if not learner.training:
            return
        pos = min(learner.state.pct_train, 1.0)
        for name, sched in self.scheds.items():
            value = sched(pos)
            learner.opt.set_hypers(**{name: value})
            self.hps[name].append(value)
