from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterable, List, Optional

import torch

from fitloop.data.provider import DataLoaders
from fitloop.exceptions import (
    CallbackNotFoundError,
    CancelBatchException,
    CancelEpochException,
    CancelFitException,
    CancelSignal,
    CancelTrainException,
    CancelValidException,
    FitInProgressError,
)
from fitloop.log.logger import Logger, log
from fitloop.static import *
from fitloop.training.callback.recorder import Recorder
from fitloop.training.callback.train_eval import TrainEvalCallback
from fitloop.training.event.dispatcher import CallbackRegistry
from fitloop.training.event.handler import Callback
from fitloop.training.event.state import State
from fitloop.training.optimizer import Optimizer, trainable_params

# scope -> (cancel signal caught by the scope, cancel event, final event)
# The fit scope also ends the run on signals no inner scope caught
_SCOPES = {
    FIT: (CancelSignal, AFTER_CANCEL_FIT, AFTER_FIT),
    EPOCH: (CancelEpochException, AFTER_CANCEL_EPOCH, AFTER_EPOCH),
    TRAIN: (CancelTrainException, AFTER_CANCEL_TRAIN, AFTER_TRAIN),
    VALIDATE: (CancelValidException, AFTER_CANCEL_VALIDATE, AFTER_VALIDATE),
    BATCH: (CancelBatchException, AFTER_CANCEL_BATCH, AFTER_BATCH),
}


def _n_batches(dl) -> Optional[int]:
    """
    Returns the number of batches of a data source, ``0`` if there is no
    data source and ``None`` if its length is unknown (e.g. a stream).
    """
    if dl is None:
        return 0
    try:
        return len(dl)
    except TypeError:
        return None


def _state_field(name: str, doc: str) -> property:
    """
    Exposes a field of the learner's :class:`State` as a read/write
    attribute of the learner.
    """

    def getter(self):
        return getattr(self.state, name)

    def setter(self, value):
        setattr(self.state, name, value)

    return property(getter, setter, doc=doc)


class Learner:
    r"""
    This is the most important class when it comes to training a model.
    It groups together a model, the data sources and a loss function, and
    runs the training loop. Every step of the loop triggers an event that is
    dispatched to the registered
    :class:`~fitloop.training.event.handler.Callback` objects, in the order
    in which they have been registered. Callbacks receive the learner and
    can inspect or modify its session state (``epoch``, ``xb``, ``yb``,
    ``pred``, ``loss``, ``dl``, ``opt``).

    The loop is made of nested scopes: fit, epoch, train/validate phase and
    batch. Each scope starts with a ``begin_*`` event and always ends with
    the corresponding ``after_*`` event, even when something inside it has
    been cancelled or has failed. A callback cancels a scope by raising the
    matching exception in :mod:`fitloop.exceptions`; the scope catches it and
    dispatches ``after_cancel_*`` before its ``after_*`` event. A cancel
    signal of an outer scope crosses the inner scopes, which still run
    their ``after_*`` events.

    Args:
        dls (:class:`~fitloop.data.provider.DataLoaders`): the training and
            validation data sources
        model (torch.nn.Module): the model to be trained
        loss_func (Callable): maps ``(pred, target)`` to a scalar loss
        opt_func (Callable[..., :class:`~fitloop.training.optimizer.Optimizer`]):
            builds the optimizer from the parameter groups and the learning
            rate. Default is an SGD :class:`~fitloop.training.optimizer.Optimizer`
        lr (float): default learning rate. Default is ``1e-3``
        splitter (Callable): maps the model to the parameter groups given
            to ``opt_func``. Default is
            :func:`~fitloop.training.optimizer.trainable_params`
        cbs (List[Callback]): callbacks to register, in order. Default is ``None``
        wd (float): default weight decay, ``None`` leaves the optimizer's
            own value untouched. Default is ``None``
        default_cbs (bool): if ``True``, registers a
            :class:`~fitloop.training.callback.train_eval.TrainEvalCallback`
            and a :class:`~fitloop.training.callback.recorder.Recorder`
            before ``cbs``. Default is ``True``
        logger (:class:`~fitloop.log.logger.Logger`): the logger.
            Default is ``None``
    """

    n_epoch = _state_field("n_epoch", "Number of epochs of the current fit.")
    epoch = _state_field("epoch", "Index of the current epoch.")
    iter = _state_field("iter", "Index of the current batch in the phase.")
    n_iter = _state_field("n_iter", "Number of batches of the phase.")
    training = _state_field("training", "Whether the train phase is running.")
    dl = _state_field("dl", "The active data source.")
    xb = _state_field("xb", "The current input batch.")
    yb = _state_field("yb", "The current target batch.")
    pred = _state_field("pred", "The output of the model on ``xb``.")
    loss = _state_field("loss", "The loss of ``pred`` against ``yb``.")

    def __init__(
        self,
        dls: DataLoaders,
        model: torch.nn.Module,
        loss_func: Callable,
        opt_func: Callable[..., Optimizer] = partial(
            Optimizer, optimizer_class_name="torch.optim.SGD"
        ),
        lr: float = DEFAULT_LR,
        splitter: Callable = trainable_params,
        cbs: List[Callback] = None,
        wd: float = None,
        default_cbs: bool = True,
        logger: Logger = None,
    ):
        self.dls = dls
        self.model = model
        self.loss_func = loss_func
        self.opt_func = opt_func
        self.lr = lr
        self.splitter = splitter
        self.wd = wd
        self.logger = logger
        self.opt = None

        self.state = State()
        self.cbs = CallbackRegistry()
        self._fitting = False

        if default_cbs:
            self.add_callbacks([TrainEvalCallback(), Recorder()])
        self.add_callbacks(cbs or [])

    @property
    def fitting(self) -> bool:
        """Whether :meth:`fit` is running."""
        return self._fitting

    def add_callback(self, cb: Callback) -> Callback:
        """
        Registers a callback after the ones already registered

        Args:
            cb (:class:`~fitloop.training.event.handler.Callback`): the callback

        Returns:
            the callback itself
        """
        self.cbs.add(cb)
        return cb

    def add_callbacks(self, cbs: Iterable[Callback]):
        for cb in cbs:
            self.add_callback(cb)

    def remove_callback(self, cb: Callback) -> Callback:
        """
        Unregisters a callback

        Args:
            cb (:class:`~fitloop.training.event.handler.Callback`): the callback

        Returns:
            the callback itself

        Raises:
            CallbackNotFoundError: if ``cb`` is not registered
        """
        self.cbs.remove(cb)
        return cb

    def remove_callbacks(self, cbs: Iterable[Callback]):
        for cb in cbs:
            self.remove_callback(cb)

    @contextmanager
    def added_callbacks(self, cbs: Optional[Iterable[Callback]]):
        """
        Registers ``cbs`` for the duration of a ``with`` block. They are
        removed on the way out, whatever happens inside the block.
        """
        cbs = list(cbs or [])
        self.add_callbacks(cbs)
        try:
            yield self
        finally:
            # Drop the registrations made here, not earlier ones of the same callback
            for cb in reversed(cbs):
                self.cbs.remove(cb, last=True)

    def get_callback(self, name: str) -> Callback:
        """
        Returns the first registered callback whose
        :attr:`~fitloop.training.event.handler.Callback.name` is ``name``

        Raises:
            CallbackNotFoundError: if there is no such callback
        """
        for cb in self.cbs:
            if cb.name == name:
                return cb
        raise CallbackNotFoundError(f"No callback named {name!r} is registered.")

    def create_opt(self):
        """
        Builds the optimizer from ``opt_func`` and ``splitter``.
        """
        self.opt = self.opt_func(self.splitter(self.model), lr=self.lr)

    def set_training_mode(self):
        """
        Sets the model and the session state in training mode
        """
        self.model.train()
        self.training = True

    def set_eval_mode(self):
        """
        Sets the model and the session state in evaluation mode
        """
        self.model.eval()
        self.training = False

    def _dispatch(self, event_name: str):
        self.cbs.dispatch(event_name, self)

    @contextmanager
    def _scope(self, name: str):
        """
        Runs the body of a loop scope. The scope's own cancel signal is
        caught and turned into the ``after_cancel_*`` event; the ``after_*``
        event is dispatched on every way out.
        """
        cancel, cancel_event, final_event = _SCOPES[name]
        try:
            yield
        except cancel as e:
            if name == FIT and not isinstance(e, CancelFitException):
                log(
                    f"Uncaught {type(e).__name__} ended the fit at epoch "
                    f"{self.epoch + 1}.",
                    self.logger,
                )
            elif name != BATCH:
                log(f"Cancelled {name} at epoch {self.epoch + 1}.", self.logger)
            self._dispatch(cancel_event)
        finally:
            self._dispatch(final_event)

    def _one_batch(self, i: int, batch):
        with self._scope(BATCH):
            self.iter = i
            self.xb, self.yb = batch
            self._dispatch(BEGIN_BATCH)
            self.pred = self.model(self.xb)
            self._dispatch(AFTER_PRED)
            self.loss = self.loss_func(self.pred, self.yb)
            self._dispatch(AFTER_LOSS)
            if not self.training:
                return
            self.loss.backward()
            self._dispatch(AFTER_BACKWARD)
            self.opt.step()
            self._dispatch(AFTER_STEP)
            self.opt.zero_grad()

    def _all_batches(self):
        if self.dl is None:
            return
        for i, batch in enumerate(self.dl):
            self._one_batch(i, batch)

    def _do_begin_fit(self, n_epoch: int):
        self.n_epoch = n_epoch
        self.epoch = 0
        self.loss = 0.0
        self._dispatch(BEGIN_FIT)

    def _do_epoch_train(self):
        with self._scope(TRAIN):
            self.dl = self.dls.train
            self.n_iter = _n_batches(self.dl)
            self.set_training_mode()
            self._dispatch(BEGIN_TRAIN)
            self._all_batches()

    def _do_epoch_validate(self, ds_idx: int = 1, dl=None):
        dl = self.dls[ds_idx] if dl is None else dl
        with self._scope(VALIDATE):
            self.dl = dl
            self.n_iter = _n_batches(self.dl)
            self.set_eval_mode()
            self._dispatch(BEGIN_VALIDATE)
            with torch.no_grad():
                self._all_batches()

    def _do_epoch(self, epoch: int):
        with self._scope(EPOCH):
            self.epoch = epoch
            self._dispatch(BEGIN_EPOCH)
            self._do_epoch_train()
            self._do_epoch_validate()

    def _end_cleanup(self):
        self.state.clear()

    def fit(
        self,
        n_epoch: int,
        lr: float = None,
        wd: float = None,
        cbs: List[Callback] = None,
        reset_opt: bool = False,
    ):
        """
        Trains the model for ``n_epoch`` epochs. Each epoch is a training
        phase over ``dls.train`` followed by a validation phase over
        ``dls.valid`` (without gradients).

        Args:
            n_epoch (int): the number of epochs
            lr (float): the learning rate, overrides the learner's default.
                Default is ``None``
            wd (float): the weight decay, overrides the learner's default.
                Default is ``None``
            cbs (List[Callback]): callbacks registered for this call only,
                after the learner's ones. Default is ``None``
            reset_opt (bool): if ``True``, a new optimizer is built even if
                one exists already. Default is ``False``

        Raises:
            FitInProgressError: if the learner is already fitting
            ValueError: if ``n_epoch`` is negative
        """
        if self._fitting:
            raise FitInProgressError("fit cannot be called while fitting.")
        if n_epoch < 0:
            raise ValueError(f"n_epoch must be non-negative, got {n_epoch}.")

        if reset_opt or self.opt is None:
            self.create_opt()
        wd = self.wd if wd is None else wd
        if wd is not None:
            self.opt.set_hypers(wd=wd)
        self.opt.set_hypers(lr=self.lr if lr is None else lr)

        self._fitting = True
        try:
            with self.added_callbacks(cbs):
                log(f"Fitting for {n_epoch} epochs.", self.logger)
                try:
                    with self._scope(FIT):
                        self._do_begin_fit(n_epoch)
                        for epoch in range(n_epoch):
                            self._do_epoch(epoch)
                finally:
                    self._end_cleanup()
        except Exception as e:
            log(f"Fit failed: {e!r}", self.logger)
            raise
        finally:
            self._fitting = False
        log("Fit completed.", self.logger)

    def __repr__(self) -> str:
        return (
            f"Learner(model={type(self.model).__name__}, "
            f"cbs={list(self.cbs)})"
        )
