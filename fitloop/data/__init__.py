from .provider import DataLoaders

__all__ = ["DataLoaders"]
