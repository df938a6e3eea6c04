import pytest

from tests.fake_learner import EventRecorder, synth_learner


@pytest.fixture
def learner():
    """
    Provide a synthetic learner with 2 training and 2 validation batches.

    Returns:
        Learner: a fresh learner, with the default callbacks registered.
    """
    return synth_learner()


@pytest.fixture
def recorder(learner):
    """
    Provide an :class:`EventRecorder` registered on the ``learner`` fixture.

    Returns:
        EventRecorder: the registered recorder.
    """
    return learner.add_callback(EventRecorder())
