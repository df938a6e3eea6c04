import tqdm

from fitloop.log.logger import fmt
from fitloop.static import TRAINING, VALIDATION
from fitloop.training.event.handler import Callback


class ProgressCallback(Callback):
    r"""
    Shows a progress bar over the batches of each phase.

    Args:
        ncols (int): width of the progress bar. Default is ``100``
        leave (bool): whether to keep the bars on screen once a phase is
            over. Default is ``False``
    """

    order = 10

    def __init__(self, ncols: int = 100, leave: bool = False):
        self.ncols = ncols
        self.leave = leave
        self.pbar = None

    def _open(self, learner, phase: str):
        self._close()
        # Streams of unknown length get tqdm's default counter format
        bar_format = None
        if learner.n_iter is not None:
            bar_format = " {desc} {percentage:3.0f}%|{bar}|{n_fmt}/{total_fmt}{postfix}"
        self.pbar = tqdm.tqdm(
            total=learner.n_iter,
            ncols=self.ncols,
            ascii=True,
            unit="batch",
            leave=self.leave,
            bar_format=bar_format,
        )
        self.pbar.set_description(
            f"Epoch {learner.epoch + 1}/{learner.n_epoch} {phase}"
        )

    def _close(self):
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def begin_train(self, learner):
        self._open(learner, TRAINING)

    def begin_validate(self, learner):
        self._open(learner, VALIDATION)

    def after_batch(self, learner):
        if self.pbar is None:
            return
        self.pbar.update(1)
        if learner.loss is not None and hasattr(learner.loss, "item"):
            self.pbar.set_postfix_str(f"loss {fmt(learner.loss.item())}")

    def after_train(self, learner):
        self._close()

    def after_validate(self, learner):
        self._close()

    def after_fit(self, learner):
        self._close()
