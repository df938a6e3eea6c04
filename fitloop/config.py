from functools import partial
from pathlib import Path
from typing import List, Union

import yaml

from fitloop.data.provider import DataLoaders
from fitloop.log.logger import Logger
from fitloop.static import *
from fitloop.training.event.handler import Callback
from fitloop.training.learner import Learner
from fitloop.training.optimizer import Optimizer
from fitloop.util import class_and_args, return_class_and_args


class Config:
    r"""
    Simple class to manage the configuration dictionary of a training run
    as a Python object with fields.

    Args:
        config_dict (dict): the configuration dictionary
    """

    def __init__(self, config_dict: dict):
        self.config_dict = config_dict

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> "Config":
        """
        Loads the configuration from a YAML file

        Args:
            filepath (Union[str, Path]): path to the YAML file

        Returns:
            a :class:`Config` object
        """
        with open(filepath, "r") as f:
            return cls(yaml.safe_load(f))

    def __getattr__(self, attr: str):
        """
        Return the value associated with ``attr`` in the wrapped dictionary.

        Raises:
            AttributeError: If ``attr`` is not present in the dictionary.
        """
        if attr == "config_dict":
            raise AttributeError(attr)
        try:
            return self.config_dict[attr]
        except KeyError:
            raise AttributeError(attr)

    def __getitem__(self, item: str):
        return self.config_dict[item]

    def __contains__(self, item: str) -> bool:
        return item in self.config_dict

    def __len__(self) -> int:
        return len(self.config_dict)

    def __iter__(self):
        return iter(self.config_dict)

    def get(self, key: str, default=None):
        """
        Return the value associated with ``key``, or ``default`` if it is
        missing or ``None``.
        """
        value = self.config_dict.get(key)
        return default if value is None else value


def build_callbacks(entries: List[Union[str, dict]]) -> List[Callback]:
    r"""
    Instantiates the callbacks listed in a configuration, in order.

    Args:
        entries (List[Union[str, dict]]): dotted paths or dictionaries with
            ``class_name`` and ``args`` fields

    Returns:
        the list of callbacks
    """
    callbacks = []
    for entry in entries or []:
        cb_class, cb_args = class_and_args(entry, key=CALLBACKS)
        callbacks.append(cb_class(**cb_args))
    return callbacks


def learner_from_config(
    config: Union[dict, Config], dls: DataLoaders, logger: Logger = None
) -> Learner:
    r"""
    Builds a :class:`~fitloop.training.learner.Learner` from a configuration.
    The ``model``, ``loss`` and ``optimizer`` fields are resolved with
    :func:`~fitloop.util.return_class_and_args`, so they can be dotted paths
    or dictionaries with ``class_name`` and ``args`` fields. ``lr``, ``wd``
    and ``callbacks`` are optional.

    Args:
        config (Union[dict, :class:`Config`]): the configuration
        dls (:class:`~fitloop.data.provider.DataLoaders`): the data sources
        logger (:class:`~fitloop.log.logger.Logger`): the logger.
            Default is ``None``

    Returns:
        the learner
    """
    if not isinstance(config, Config):
        config = Config(config)

    model_class, model_args = return_class_and_args(config.config_dict, MODEL)
    if model_class is None:
        raise ValueError(f"Missing '{MODEL}' in configuration")
    loss_class, loss_args = return_class_and_args(config.config_dict, LOSS)
    if loss_class is None:
        raise ValueError(f"Missing '{LOSS}' in configuration")

    opt_name, opt_args = return_class_and_args(
        config.config_dict, OPTIMIZER, return_class_name=True
    )
    if opt_name is None:
        opt_name, opt_args = "torch.optim.SGD", {}

    return Learner(
        dls,
        model_class(**model_args),
        loss_class(**loss_args),
        opt_func=partial(Optimizer, optimizer_class_name=opt_name, **opt_args),
        lr=config.get(LR, DEFAULT_LR),
        wd=config.get(WD),
        cbs=build_callbacks(config.get(CALLBACKS, [])),
        logger=logger,
    )
