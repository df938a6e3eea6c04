import re

_camel_re1 = re.compile("(.)([A-Z][a-z]+)")
_camel_re2 = re.compile("([a-z0-9])([A-Z])")


def camel2snake(name: str) -> str:
    """
    Converts a CamelCase name into snake_case

    Args:
        name (str): the name to convert

    Returns:
        the snake_case version of ``name``
    """
    s1 = re.sub(_camel_re1, r"\1_\2", name)
    return re.sub(_camel_re2, r"\1_\2", s1).lower()


class Callback:
    r"""
    Interface that adheres to the Publisher/Subscribe pattern for training.
    It defines the main methods that a subscriber should implement.
    Each method receives the :class:`~fitloop.training.learner.Learner`
    that triggered the event, and may read or modify its session state
    (``learner.xb``, ``learner.pred``, ``learner.loss``, ...).

    The order in which callbacks are registered is the order in which they
    are called, hence it is part of the observable behavior of training.
    Any hook may raise one of the cancel signals defined in
    :mod:`fitloop.exceptions` to cut short the corresponding loop scope.
    """

    # Informative only, dispatch follows registration order
    order = 0

    @property
    def name(self) -> str:
        """
        Name used to look the callback up with
        :meth:`~fitloop.training.learner.Learner.get_callback`, i.e. the
        snake_case class name without the ``Callback`` suffix.
        """
        return camel2snake(re.sub(r"Callback$", "", type(self).__name__) or "callback")

    def begin_fit(self, learner):
        """
        Callback for the beginning of training, before the first epoch

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_fit(self, learner):
        """
        Callback for the end of training. Always called, even if training
        was cancelled or failed.

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def begin_epoch(self, learner):
        """
        Callback for the beginning of an epoch, ``learner.epoch`` is set

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_epoch(self, learner):
        """
        Callback for the end of an epoch. Always called once per epoch.

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def begin_train(self, learner):
        """
        Callback for the beginning of the training phase of an epoch

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_train(self, learner):
        """
        Callback for the end of the training phase of an epoch

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def begin_validate(self, learner):
        """
        Callback for the beginning of the validation phase of an epoch

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_validate(self, learner):
        """
        Callback for the end of the validation phase of an epoch

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def begin_batch(self, learner):
        """
        Callback for the beginning of a batch, ``learner.xb`` and
        ``learner.yb`` are set

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_batch(self, learner):
        """
        Callback for the end of a batch. Always called once per batch.

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_pred(self, learner):
        """
        Callback for the forward pass, ``learner.pred`` is set

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_loss(self, learner):
        """
        Callback for the loss computation, ``learner.loss`` is set

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_backward(self, learner):
        """
        Callback for the backward pass, gradients are available but the
        parameters have not been updated yet (training only)

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_step(self, learner):
        """
        Callback for the optimizer step, before gradients are zeroed
        (training only)

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_cancel_batch(self, learner):
        """
        Callback triggered when a batch has been cancelled

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_cancel_train(self, learner):
        """
        Callback triggered when the training phase has been cancelled

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_cancel_validate(self, learner):
        """
        Callback triggered when the validation phase has been cancelled

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_cancel_epoch(self, learner):
        """
        Callback triggered when an epoch has been cancelled

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def after_cancel_fit(self, learner):
        """
        Callback triggered when training has been cancelled

        Args:
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                being trained
        """
        pass

    def __repr__(self) -> str:
        return type(self).__name__
