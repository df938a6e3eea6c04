from .logger import Logger, fmt, log

__all__ = ["Logger", "fmt", "log"]
