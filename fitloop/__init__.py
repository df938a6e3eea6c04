from . import data, exceptions, log, static, training, util

__all__ = [
    "data",
    "exceptions",
    "log",
    "static",
    "training",
    "util",
]
