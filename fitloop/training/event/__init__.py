from .dispatcher import CallbackRegistry
from .handler import Callback
from .state import State

__all__ = ["Callback", "CallbackRegistry", "State"]
