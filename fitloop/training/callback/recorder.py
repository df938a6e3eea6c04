from typing import List, Optional

from fitloop.log.logger import fmt, log
from fitloop.static import LR, TRAINING, VALIDATION
from fitloop.training.event.handler import Callback


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if len(values) > 0 else None


class Recorder(Callback):
    r"""
    Records the losses and learning rates seen during training.

    After each epoch, a dictionary with fields ``epoch``,
    ``training_loss`` and ``validation_loss`` (the mean batch losses of the
    two phases, ``None`` if a phase saw no loss) is appended to
    :attr:`values` and a line is written to the learner's logger.

    Attributes:
        values (List[dict]): one entry per completed epoch
        losses (List[float]): the loss of every training batch
        lrs (List[float]): the learning rate of every optimizer step
    """

    order = -5

    def __init__(self):
        self.values = []
        self.losses = []
        self.lrs = []
        self._phase_losses = []
        self._epoch_losses = {}

    def begin_fit(self, learner):
        self.values, self.losses, self.lrs = [], [], []

    def begin_epoch(self, learner):
        self._epoch_losses = {TRAINING: None, VALIDATION: None}

    def begin_train(self, learner):
        self._phase_losses = []

    def begin_validate(self, learner):
        self._phase_losses = []

    def after_loss(self, learner):
        loss = learner.loss.item()
        self._phase_losses.append(loss)
        if learner.training:
            self.losses.append(loss)

    def after_step(self, learner):
        self.lrs.append(learner.opt.hypers[-1][LR])

    def after_train(self, learner):
        self._epoch_losses[TRAINING] = _mean(self._phase_losses)

    def after_validate(self, learner):
        self._epoch_losses[VALIDATION] = _mean(self._phase_losses)

    def after_epoch(self, learner):
        tr_loss = self._epoch_losses.get(TRAINING)
        vl_loss = self._epoch_losses.get(VALIDATION)
        self.values.append(
            {
                "epoch": learner.epoch,
                f"{TRAINING}_loss": tr_loss,
                f"{VALIDATION}_loss": vl_loss,
            }
        )
        log(
            f"Epoch: {learner.epoch + 1}, TR loss: {fmt(tr_loss)} "
            f"VL loss: {fmt(vl_loss)}",
            learner.logger,
        )

    def last(self, key: str):
        """
        Returns the value of ``key`` for the last recorded epoch, or
        :obj:`None` if no epoch has been recorded yet.
        """
        if len(self.values) == 0:
            return None
        return self.values[-1].get(key)
