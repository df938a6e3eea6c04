from fitloop.training.event.handler import Callback


class TrainEvalCallback(Callback):
    r"""
    Keeps track of the training progress in the learner's state:

    * ``train_iter``: number of training batches processed so far
    * ``pct_train``: fraction of the fit that has been completed, in [0, 1]

    The learner registers it first by default, so that any other callback
    sees up-to-date values.
    """

    order = -10

    def begin_fit(self, learner):
        """
        Resets the counters
        """
        learner.state.update(train_iter=0, pct_train=0.0)

    def begin_train(self, learner):
        """
        Aligns ``pct_train`` with the beginning of the current epoch
        """
        if learner.n_epoch > 0:
            learner.state.update(pct_train=learner.epoch / learner.n_epoch)

    def after_batch(self, learner):
        """
        Advances the counters after every training batch
        """
        if not learner.training:
            return
        learner.state.update(train_iter=learner.state.train_iter + 1)
        if learner.n_iter:
            learner.state.update(
                pct_train=learner.state.pct_train
                + 1.0 / (learner.n_iter * learner.n_epoch)
            )
