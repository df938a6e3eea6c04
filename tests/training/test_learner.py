"""
Tests for :class:`fitloop.training.learner.Learner`.

They cover the exact sequence of events of a fit, the scoping of every
cancel signal, the cleanup guarantees on errors, and the handling of the
optimizer and of the session state across fits.
"""

import pytest
import torch

from fitloop.exceptions import (
    CancelBatchException,
    CancelEpochException,
    CancelFitException,
    CancelTrainException,
    CancelValidException,
    FitInProgressError,
    RegistryLockedError,
)
from fitloop.log.logger import Logger
from fitloop.static import *
from fitloop.training.event.handler import Callback
from tests.fake_learner import EventRecorder, RaiseOn, synth_learner

TRAIN_BATCH = [BEGIN_BATCH, AFTER_PRED, AFTER_LOSS, AFTER_BACKWARD, AFTER_STEP, AFTER_BATCH]
VALID_BATCH = [BEGIN_BATCH, AFTER_PRED, AFTER_LOSS, AFTER_BATCH]


def _epoch_trace(n_train_batches=2, n_valid_batches=2):
    return (
        [BEGIN_EPOCH, BEGIN_TRAIN]
        + TRAIN_BATCH * n_train_batches
        + [AFTER_TRAIN, BEGIN_VALIDATE]
        + VALID_BATCH * n_valid_batches
        + [AFTER_VALIDATE, AFTER_EPOCH]
    )


def _assert_cleared(learner):
    assert learner.loss is None
    assert learner.pred is None
    assert learner.xb is None
    assert learner.yb is None
    assert learner.dl is None


def test_event_trace_of_a_full_fit(learner, recorder):
    """
    Three epochs with two batches per phase produce a fixed trace:
    26 events per epoch plus begin_fit/after_fit.
    """
    learner.fit(3)

    expected = [BEGIN_FIT] + _epoch_trace() * 3 + [AFTER_FIT]
    assert len(recorder.trace) == 3 * 26 + 2
    assert recorder.trace == expected


@pytest.mark.parametrize("n_epoch", [0, 1, 4])
def test_one_begin_after_pair_per_epoch(n_epoch):
    """fit(n) dispatches n epoch pairs and exactly one fit pair."""
    learner = synth_learner()
    recorder = learner.add_callback(EventRecorder())

    learner.fit(n_epoch)

    assert recorder.count(BEGIN_FIT) == recorder.count(AFTER_FIT) == 1
    assert recorder.count(BEGIN_EPOCH) == recorder.count(AFTER_EPOCH) == n_epoch


def test_epoch_pairs_survive_batch_cancellation(learner, recorder):
    """Cancelling every batch does not change the number of epochs."""

    class CancelAll(Callback):
        def begin_batch(self, learner):
            raise CancelBatchException()

    learner.add_callback(CancelAll())
    learner.fit(3)

    assert recorder.count(BEGIN_EPOCH) == recorder.count(AFTER_EPOCH) == 3
    assert recorder.count(AFTER_CANCEL_BATCH) == 3 * 4
    assert recorder.count(AFTER_PRED) == 0


def test_negative_epochs_are_rejected(learner):
    """fit() validates the number of epochs before doing anything."""
    with pytest.raises(ValueError):
        learner.fit(-1)
    assert learner.opt is None


def test_cancel_batch_after_pred_skips_rest_of_batch(learner, recorder):
    """
    Cancelling in after_pred skips loss, backward and step for that batch
    only, then after_cancel_batch and after_batch run and training goes on.
    """
    learner.add_callback(RaiseOn(AFTER_PRED, CancelBatchException))

    learner.fit(1)

    first_batch = recorder.trace[3:7]
    assert first_batch == [BEGIN_BATCH, AFTER_PRED, AFTER_CANCEL_BATCH, AFTER_BATCH]
    assert recorder.trace[7:13] == TRAIN_BATCH
    assert recorder.count(AFTER_STEP) == 1
    assert recorder.count(AFTER_BATCH) == 4


def test_cancel_epoch_during_train_phase_moves_to_next_epoch(learner, recorder):
    """
    Cancelling epoch 2 (of 0..4) during training skips the rest of that
    epoch, runs after_cancel_epoch and after_epoch, and continues with
    epoch 3.
    """
    learner.add_callback(
        RaiseOn(AFTER_STEP, CancelEpochException, when=lambda lrn: lrn.epoch == 2)
    )

    learner.fit(5)

    assert recorder.count(BEGIN_EPOCH) == recorder.count(AFTER_EPOCH) == 5
    assert recorder.count(AFTER_CANCEL_EPOCH) == 1
    assert recorder.count(BEGIN_VALIDATE) == 4

    start = 1 + 2 * 26
    assert recorder.trace[start : start + 10] == [
        BEGIN_EPOCH,
        BEGIN_TRAIN,
        BEGIN_BATCH,
        AFTER_PRED,
        AFTER_LOSS,
        AFTER_BACKWARD,
        AFTER_STEP,
        AFTER_BATCH,
        AFTER_TRAIN,
        AFTER_CANCEL_EPOCH,
    ]
    assert recorder.trace[start + 10 : start + 12] == [AFTER_EPOCH, BEGIN_EPOCH]


def test_cancel_train_runs_validation(learner, recorder):
    """Cancelling the training phase still runs the validation phase."""
    learner.add_callback(RaiseOn(BEGIN_TRAIN, CancelTrainException))

    learner.fit(1)

    assert recorder.trace == [
        BEGIN_FIT,
        BEGIN_EPOCH,
        BEGIN_TRAIN,
        AFTER_CANCEL_TRAIN,
        AFTER_TRAIN,
        BEGIN_VALIDATE,
    ] + VALID_BATCH * 2 + [AFTER_VALIDATE, AFTER_EPOCH, AFTER_FIT]


def test_cancel_validate_from_a_batch(learner, recorder):
    """
    A validation cancel raised inside a batch crosses the batch scope,
    which still dispatches after_batch, and is caught by the phase.
    """
    learner.add_callback(
        RaiseOn(AFTER_LOSS, CancelValidException, when=lambda lrn: not lrn.training)
    )

    learner.fit(1)

    assert recorder.trace[-9:] == [
        BEGIN_VALIDATE,
        BEGIN_BATCH,
        AFTER_PRED,
        AFTER_LOSS,
        AFTER_BATCH,
        AFTER_CANCEL_VALIDATE,
        AFTER_VALIDATE,
        AFTER_EPOCH,
        AFTER_FIT,
    ]
    assert recorder.count(AFTER_CANCEL_BATCH) == 0


@pytest.mark.parametrize(
    "event",
    [
        BEGIN_FIT,
        BEGIN_EPOCH,
        BEGIN_TRAIN,
        BEGIN_BATCH,
        AFTER_PRED,
        AFTER_LOSS,
        AFTER_BACKWARD,
        AFTER_STEP,
        AFTER_BATCH,
        AFTER_TRAIN,
        BEGIN_VALIDATE,
        AFTER_VALIDATE,
        AFTER_EPOCH,
    ],
)
def test_cancel_fit_at_any_depth(event):
    """
    Cancelling the fit from any event ends training cleanly: one
    after_cancel_fit, one after_fit, no further epochs, cleared state.
    """
    learner = synth_learner()
    recorder = learner.add_callback(EventRecorder())
    learner.add_callback(RaiseOn(event, CancelFitException))

    learner.fit(3)

    assert recorder.count(AFTER_CANCEL_FIT) == 1
    assert recorder.count(AFTER_FIT) == 1
    assert recorder.trace[-2:] == [AFTER_CANCEL_FIT, AFTER_FIT]
    assert recorder.count(BEGIN_EPOCH) == (0 if event == BEGIN_FIT else 1)
    assert recorder.count(BEGIN_EPOCH) == recorder.count(AFTER_EPOCH)
    assert recorder.count(BEGIN_BATCH) == recorder.count(AFTER_BATCH)
    assert recorder.count(AFTER_CANCEL_EPOCH) == 0
    _assert_cleared(learner)
    assert not learner.fitting


def test_state_cleared_after_fit_and_refit(learner, recorder):
    """
    After a fit the per-run fields are cleared, and a second fit runs the
    same trace from a clean state.
    """
    seen = []

    class LossAtBeginFit(Callback):
        def begin_fit(self, learner):
            seen.append((learner.loss, learner.xb, learner.pred))

    learner.add_callback(LossAtBeginFit())

    learner.fit(1)
    _assert_cleared(learner)
    first_trace = list(recorder.trace)

    recorder.trace.clear()
    learner.fit(1)
    _assert_cleared(learner)

    assert recorder.trace == first_trace
    assert seen == [(0.0, None, None), (0.0, None, None)]


def test_session_state_visible_to_callbacks(learner):
    """Callbacks see the batch, prediction and loss of the current step."""
    seen = []

    class Inspect(Callback):
        def after_loss(self, learner):
            seen.append(
                (
                    learner.epoch,
                    learner.iter,
                    learner.training,
                    tuple(learner.xb.shape),
                    tuple(learner.pred.shape),
                    learner.loss.dim(),
                    learner.dl is (learner.dls.train if learner.training else learner.dls.valid),
                )
            )

    learner.add_callback(Inspect())
    learner.fit(1)

    assert seen == [
        (0, 0, True, (4, 1), (4, 1), 0, True),
        (0, 1, True, (4, 1), (4, 1), 0, True),
        (0, 0, False, (4, 1), (4, 1), 0, True),
        (0, 1, False, (4, 1), (4, 1), 0, True),
    ]


def test_callbacks_can_mutate_session_state(learner):
    """A callback replacing the targets changes what the loss is computed on."""
    losses = []

    class ZeroTargets(Callback):
        def begin_batch(self, learner):
            learner.yb = torch.zeros_like(learner.yb)
            learner.model.weight.data.zero_()
            learner.model.bias.data.zero_()

        def after_loss(self, learner):
            losses.append(learner.loss.item())

    learner.add_callback(ZeroTargets())
    learner.fit(1)

    assert losses == [0.0, 0.0, 0.0, 0.0]


def test_validation_runs_without_gradients(learner):
    """Predictions require gradients only during the training phase."""
    flags = []

    class GradFlag(Callback):
        def after_pred(self, learner):
            flags.append((learner.training, learner.pred.requires_grad))

    learner.add_callback(GradFlag())
    learner.fit(1)

    assert flags == [(True, True), (True, True), (False, False), (False, False)]
    assert not learner.model.training


def test_collaborator_error_runs_cleanups_and_propagates(learner, recorder):
    """
    An error of the model is fatal: all enclosing after_* events run on the
    way out, then fit raises and the state is cleared.
    """

    def broken_loss(pred, target):
        raise RuntimeError("loss exploded")

    learner.loss_func = broken_loss

    with pytest.raises(RuntimeError, match="loss exploded"):
        learner.fit(2)

    assert recorder.trace == [
        BEGIN_FIT,
        BEGIN_EPOCH,
        BEGIN_TRAIN,
        BEGIN_BATCH,
        AFTER_PRED,
        AFTER_BATCH,
        AFTER_TRAIN,
        AFTER_EPOCH,
        AFTER_FIT,
    ]
    _assert_cleared(learner)
    assert not learner.fitting


def test_fit_is_not_reentrant(learner):
    """Calling fit from a callback raises and leaves the learner usable."""

    class Reenter(Callback):
        def begin_epoch(self, learner):
            learner.fit(1)

    reenter = learner.add_callback(Reenter())

    with pytest.raises(FitInProgressError):
        learner.fit(1)
    assert not learner.fitting
    _assert_cleared(learner)

    learner.remove_callback(reenter)
    learner.fit(1)


def test_callbacks_cannot_be_added_while_dispatching(learner):
    """Registering a callback from inside a hook is refused."""

    class AddMore(Callback):
        def begin_fit(self, learner):
            learner.add_callback(Callback())

    learner.add_callback(AddMore())
    with pytest.raises(RegistryLockedError):
        learner.fit(1)


def test_extra_callbacks_live_for_one_fit(learner):
    """Callbacks passed to fit are appended for that call only."""
    extra = EventRecorder()
    n_cbs = len(learner.cbs)

    learner.fit(1, cbs=[extra])

    assert extra.count(BEGIN_FIT) == 1
    assert extra not in learner.cbs
    assert len(learner.cbs) == n_cbs


def test_extra_callbacks_removed_after_failure(learner):
    """Callbacks passed to fit are removed even if fit fails."""
    extra = RaiseOn(BEGIN_EPOCH, lambda: KeyError("boom"))

    with pytest.raises(KeyError):
        learner.fit(1, cbs=[extra])
    assert extra not in learner.cbs


def test_optimizer_created_once_and_preserved(learner):
    """The optimizer survives fits (also failed ones) unless reset."""
    learner.fit(1)
    opt = learner.opt

    learner.fit(1)
    assert learner.opt is opt

    with pytest.raises(RuntimeError):
        learner.fit(1, cbs=[RaiseOn(BEGIN_FIT, lambda: RuntimeError("x"))])
    assert learner.opt is opt

    learner.fit(1, reset_opt=True)
    assert learner.opt is not opt


def test_lr_and_wd_resolution():
    """Explicit lr/wd override the learner's defaults on the optimizer."""
    learner = synth_learner(lr=0.05)
    learner.fit(0)
    assert learner.opt.hypers[0]["lr"] == 0.05
    assert learner.opt.hypers[0]["weight_decay"] == 0

    learner.fit(0, lr=0.5, wd=0.1)
    assert learner.opt.hypers[0]["lr"] == 0.5
    assert learner.opt.hypers[0]["weight_decay"] == 0.1

    learner.wd = 0.2
    learner.fit(0)
    assert learner.opt.hypers[0]["lr"] == 0.05
    assert learner.opt.hypers[0]["weight_decay"] == 0.2


def test_training_reduces_the_loss():
    """A few epochs on a linear problem make the model better."""
    learner = synth_learner(n_train=64, n_valid=32, bs=16, lr=0.1)
    xb, yb = learner.dls.one_batch()
    init_loss = learner.loss_func(learner.model(xb), yb).item()

    learner.fit(6)

    recorded = learner.get_callback("recorder").values
    assert len(recorded) == 6
    assert recorded[-1][f"{VALIDATION}_loss"] < init_loss
    assert recorded[-1][f"{TRAINING}_loss"] < recorded[0][f"{TRAINING}_loss"]


def test_missing_validation_data():
    """Without validation data the validation phase has no batches."""
    learner = synth_learner()
    learner.dls.valid = None
    recorder = learner.add_callback(EventRecorder())

    learner.fit(1)

    assert recorder.trace[-4:] == [BEGIN_VALIDATE, AFTER_VALIDATE, AFTER_EPOCH, AFTER_FIT]


def test_logger_reports_fit(tmp_path):
    """Fit start, epoch results and fit end are written to the logger."""
    logger = Logger(tmp_path / "logs" / "fit.log", mode="w", debug=False)
    learner = synth_learner(logger=logger)

    learner.fit(2, cbs=[RaiseOn(BEGIN_EPOCH, CancelEpochException)])

    lines = (tmp_path / "logs" / "fit.log").read_text().splitlines()
    assert lines[0] == "Fitting for 2 epochs."
    assert lines[1] == "Cancelled epoch at epoch 1."
    assert lines[2].startswith("Epoch: 1, TR loss: N/A VL loss: N/A")
    assert lines[3].startswith("Epoch: 2, TR loss: ")
    assert lines[-1] == "Fit completed."


@pytest.mark.parametrize(
    "event, exc",
    [
        (AFTER_STEP, CancelValidException),
        (BEGIN_EPOCH, CancelBatchException),
        (BEGIN_VALIDATE, CancelTrainException),
    ],
)
def test_signal_outside_its_scope_ends_fit_cleanly(event, exc):
    """
    A cancel signal raised where its own scope does not enclose it never
    escapes fit: the run ends through after_cancel_fit and after_fit.
    """
    learner = synth_learner()
    recorder = learner.add_callback(EventRecorder())
    learner.add_callback(RaiseOn(event, exc))

    learner.fit(2)

    assert recorder.trace[-2:] == [AFTER_CANCEL_FIT, AFTER_FIT]
    assert recorder.count(BEGIN_EPOCH) == recorder.count(AFTER_EPOCH) == 1
    assert recorder.count(AFTER_FIT) == 1
    _assert_cleared(learner)
    assert not learner.fitting


def test_stray_signal_is_logged(tmp_path):
    """The logger names the signal that ended the fit."""
    logger = Logger(tmp_path / "fit.log", mode="w", debug=False)
    learner = synth_learner(logger=logger)

    learner.fit(2, cbs=[RaiseOn(AFTER_STEP, CancelValidException)])

    lines = (tmp_path / "fit.log").read_text().splitlines()
    assert "Uncaught CancelValidException ended the fit at epoch 1." in lines
    assert lines[-1] == "Fit completed."


def test_extra_callback_already_registered_keeps_order(learner):
    """
    Passing an already registered callback to fit dispatches it twice for
    that call, then leaves the registry as it was.
    """
    shared = learner.add_callback(EventRecorder())
    last = learner.add_callback(Callback())
    before = list(learner.cbs)

    learner.fit(0, cbs=[shared])

    assert shared.count(BEGIN_FIT) == 2
    assert list(learner.cbs) == before
    assert list(learner.cbs)[-1] is last


def test_fit_cancel_log_reports_current_run_epoch(tmp_path):
    """A fit cancelled at begin_fit does not report the previous run's epoch."""
    logger = Logger(tmp_path / "fit.log", mode="w", debug=False)
    learner = synth_learner(logger=logger)
    learner.fit(3)

    learner.fit(3, cbs=[RaiseOn(BEGIN_FIT, CancelFitException)])

    lines = (tmp_path / "fit.log").read_text().splitlines()
    assert lines[-2] == "Cancelled fit at epoch 1."
    assert learner.epoch == 0
