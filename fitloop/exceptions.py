"""Exceptions used by fitloop.

Cancel signals are raised by callbacks to cut a loop scope short. Each one is
caught by the scope it names, which then dispatches the matching
``after_cancel_*`` event. The remaining classes report misuse of the learner.
"""


class CancelSignal(Exception):
    """Base class of the cooperative cancellation signals."""


class CancelBatchException(CancelSignal):
    """Skip the rest of the current batch."""


class CancelTrainException(CancelSignal):
    """Skip the rest of the training phase of the current epoch."""


class CancelValidException(CancelSignal):
    """Skip the rest of the validation phase of the current epoch."""


class CancelEpochException(CancelSignal):
    """Skip the rest of the current epoch."""


class CancelFitException(CancelSignal):
    """Stop training altogether."""


class FitInProgressError(RuntimeError):
    """Raised when ``fit`` is called on a learner that is already fitting."""


class CallbackNotFoundError(ValueError):
    """Raised when removing a callback that has not been registered."""


class RegistryLockedError(RuntimeError):
    """Raised when the callback registry is mutated during a dispatch."""
