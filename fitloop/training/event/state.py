# Fields that only make sense while a fit is running, cleared at its end
PER_RUN_FIELDS = ("dl", "xb", "yb", "pred", "loss")


class State:
    """
    Any object of this class contains the session state of a training run,
    which is handled and modified by a
    :class:`~fitloop.training.learner.Learner` as well as by the
    :class:`~fitloop.training.event.handler.Callback` objects.

    Fields are valid only within their scope: for instance ``xb`` and ``yb``
    are set at the beginning of a batch, and nothing should be assumed about
    them during ``begin_fit``.
    """

    def __init__(self):
        """
        Initialize the session state.

        Side effects:
            Initializes every field to its idle value.
        """
        self.n_epoch = 0
        self.epoch = 0
        self.iter = 0
        self.n_iter = 0
        self.training = False
        self.train_iter = 0
        self.pct_train = 0.0
        self.dl = None
        self.xb = None
        self.yb = None
        self.pred = None
        self.loss = None

    def __getitem__(self, name):
        """
        Returns the value associated with argument `name`, otherwise returns
        :obj:`None`
        """
        return getattr(self, name, None)

    def __contains__(self, name):
        """
        Returns true if state contains the field `name`, and False otherwise
        """
        return name in self.__dict__

    def update(self, **values: dict):
        """
        The method sets new attributes or updates existing ones using the
        key,value pairs in ``values``

        Args:
            values: a dictionary of key,value pairs to store in
                the session state
        """
        for name, value in values.items():
            setattr(self, name, value)

    def clear(self):
        """
        Clears the per-run fields so that nothing leaks into the next run.
        """
        self.update(**{name: None for name in PER_RUN_FIELDS})
