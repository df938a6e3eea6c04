from torch.nn.utils import clip_grad_norm_, clip_grad_value_

from fitloop.training.event.handler import Callback


class GradientClipper(Callback):
    r"""
    GradientClipper clips the gradients of the model after the backward
    pass, before the optimizer step. Exactly one of ``clip_value`` and
    ``max_norm`` must be given.

    Args:
        clip_value (float): the gradient will be clipped in
            [-clip_value, clip_value]
        max_norm (float): the gradient will be rescaled so that its total
            norm is at most ``max_norm``
        kwargs (dict): additional arguments
    """

    def __init__(self, clip_value: float = None, max_norm: float = None, **kwargs: dict):
        """
        Initialize the gradient clipper.

        Args:
            clip_value (float): Clip value used by
                :func:`torch.nn.utils.clip_grad_value_`.
            max_norm (float): Max norm used by
                :func:`torch.nn.utils.clip_grad_norm_`.
            **kwargs: Unused extra arguments (kept for configuration
                compatibility).

        Raises:
            ValueError: if both or none of ``clip_value`` and ``max_norm``
                are given.
        """
        if (clip_value is None) == (max_norm is None):
            raise ValueError("Specify exactly one of clip_value and max_norm")
        self.clip_value = clip_value
        self.max_norm = max_norm

    def after_backward(self, learner):
        """
        Clips the gradients of the model before the weights are updated.

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        if self.clip_value is not None:
            clip_grad_value_(learner.model.parameters(), clip_value=self.clip_value)
        else:
            clip_grad_norm_(learner.model.parameters(), max_norm=self.max_norm)
