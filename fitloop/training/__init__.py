"""Training loop, optimizer wrapper, event system and callbacks."""

from .event import Callback, CallbackRegistry, State
from .learner import Learner
from .optimizer import Optimizer, trainable_params

__all__ = [
    "Callback",
    "CallbackRegistry",
    "Learner",
    "Optimizer",
    "State",
    "trainable_params",
]
