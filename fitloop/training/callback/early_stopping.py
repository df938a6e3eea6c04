import math

from fitloop.exceptions import CancelFitException
from fitloop.log.logger import log
from fitloop.static import VALIDATION
from fitloop.training.event.handler import Callback


class EarlyStopper(Callback):
    r"""
    Stops training when the monitored loss has not improved for
    ``patience`` epochs. The loss is read from the learner's
    :class:`~fitloop.training.callback.recorder.Recorder`, which must be
    registered before this callback (the learner does so by default).

    Args:
        monitor (str): the field of the recorder to monitor.
            Default is ``validation_loss``
        patience (int): the number of epochs without improvement that are
            tolerated. Default is ``3``
        min_delta (float): minimum decrease of the loss that counts as an
            improvement. Default is ``0``
    """

    def __init__(
        self,
        monitor: str = f"{VALIDATION}_loss",
        patience: int = 3,
        min_delta: float = 0.0,
    ):
        if patience < 0:
            raise ValueError(f"patience must be non-negative, got {patience}")
        self.monitor = monitor
        self.patience = patience
        self.min_delta = min_delta
        self.best = math.inf
        self.best_epoch = None
        self.wait = 0
        self.stopped_epoch = None

    def begin_fit(self, learner):
        self.best = math.inf
        self.best_epoch = None
        self.wait = 0
        self.stopped_epoch = None

    def after_epoch(self, learner):
        """
        Compares the monitored loss against the best one seen so far and
        raises :class:`~fitloop.exceptions.CancelFitException` when the
        patience is exhausted.
        """
        value = learner.get_callback("recorder").last(self.monitor)
        if value is None:
            return
        if value < self.best - self.min_delta:
            self.best = value
            self.best_epoch = learner.epoch
            self.wait = 0
            return
        self.wait += 1
        if self.wait > self.patience:
            self.stopped_epoch = learner.epoch
            best_epoch = "N/A" if self.best_epoch is None else self.best_epoch + 1
            log(
                f"Stopping at epoch {learner.epoch + 1}, best was "
                f"{best_epoch} with {self.monitor} {self.best}.",
                learner.logger,
            )
            raise CancelFitException()
