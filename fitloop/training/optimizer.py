from typing import Iterable, List, Union

import torch

from fitloop.static import WD, WEIGHT_DECAY
from fitloop.util import s2c

# Short hyper-parameter names accepted by set_hypers
HYPER_ALIASES = {WD: WEIGHT_DECAY}


def trainable_params(model: torch.nn.Module) -> List[torch.nn.Parameter]:
    r"""
    Default splitter: returns all the trainable parameters of the model as a
    single parameter group.

    Args:
        model (torch.nn.Module): the model

    Returns:
        the list of parameters that require gradients
    """
    return [p for p in model.parameters() if p.requires_grad]


class Optimizer:
    r"""
    Thin wrapper around a ``torch.optim`` optimizer that exposes the
    operations a :class:`~fitloop.training.learner.Learner` relies on.

    Args:
        params (Union[Iterable[torch.nn.Parameter], Iterable[dict]]): the
            parameters (or parameter groups) returned by the splitter
        optimizer_class_name (str): dotted path to the optimizer class,
            e.g. ``torch.optim.SGD``
        kwargs (dict): arguments passed to the optimizer, the short names
            in :obj:`HYPER_ALIASES` are accepted
    """

    def __init__(
        self,
        params: Union[Iterable[torch.nn.Parameter], Iterable[dict]],
        optimizer_class_name: str = "torch.optim.SGD",
        **kwargs: dict,
    ):
        self.optimizer_class_name = optimizer_class_name
        self.optimizer = s2c(optimizer_class_name)(
            list(params), **self._resolve(kwargs)
        )

    @staticmethod
    def _resolve(hypers: dict) -> dict:
        return {HYPER_ALIASES.get(k, k): v for k, v in hypers.items()}

    @property
    def param_groups(self) -> List[dict]:
        return self.optimizer.param_groups

    @property
    def hypers(self) -> List[dict]:
        """
        Returns the hyper-parameters of each parameter group, i.e. every
        field of the group except the parameters themselves.
        """
        return [
            {k: v for k, v in group.items() if k != "params"}
            for group in self.optimizer.param_groups
        ]

    def set_hypers(self, **hypers: dict):
        """
        Sets the hyper-parameters of all the parameter groups

        Args:
            hypers (dict): mapping from hyper-parameter name (e.g. ``lr``,
                ``wd``) to its new value
        """
        for name, value in self._resolve(hypers).items():
            for group in self.optimizer.param_groups:
                group[name] = value

    def step(self):
        self.optimizer.step()

    def zero_grad(self):
        self.optimizer.zero_grad()

    def state_dict(self) -> dict:
        return self.optimizer.state_dict()

    def load_state_dict(self, state_dict: dict):
        self.optimizer.load_state_dict(state_dict)

    def __repr__(self) -> str:
        return f"Optimizer({self.optimizer_class_name}, {self.hypers})"
