from typing import Iterable, Optional, Tuple

from torch.utils.data import DataLoader, TensorDataset


class DataLoaders:
    r"""
    Groups the data sources used by a
    :class:`~fitloop.training.learner.Learner`: one for training and
    (optionally) one for validation. Each data source must be re-iterable
    (e.g. a :class:`torch.utils.data.DataLoader`) and yield ``(x, y)``
    pairs, one per batch.

    Args:
        train (Iterable): the training data source
        valid (Iterable): the validation data source. Default is ``None``
    """

    def __init__(self, train: Iterable, valid: Optional[Iterable] = None):
        self.train = train
        self.valid = valid

    @property
    def loaders(self) -> Tuple[Iterable, Optional[Iterable]]:
        return self.train, self.valid

    def __getitem__(self, idx: int) -> Optional[Iterable]:
        """
        Returns the training data source for ``idx=0`` and the validation
        one for ``idx=1``.
        """
        return self.loaders[idx]

    def __len__(self) -> int:
        return len(self.loaders)

    def one_batch(self):
        """
        Returns the first batch of the training data source
        """
        for b in self.train:
            return b
        raise ValueError("The training data source does not yield any batch.")

    @classmethod
    def from_tensors(
        cls,
        x_train,
        y_train,
        x_valid=None,
        y_valid=None,
        batch_size: int = 64,
        shuffle: bool = True,
    ) -> "DataLoaders":
        r"""
        Builds the data sources from in-memory tensors, wrapping them in
        :class:`torch.utils.data.TensorDataset` objects.

        Args:
            x_train (torch.Tensor): training inputs
            y_train (torch.Tensor): training targets
            x_valid (torch.Tensor): validation inputs. Default is ``None``
            y_valid (torch.Tensor): validation targets. Default is ``None``
            batch_size (int): the batch size of both data sources
            shuffle (bool): whether to shuffle the training data at each epoch

        Returns:
            a :class:`DataLoaders` object
        """
        train = DataLoader(
            TensorDataset(x_train, y_train), batch_size=batch_size, shuffle=shuffle
        )
        valid = None
        if x_valid is not None and y_valid is not None:
            valid = DataLoader(
                TensorDataset(x_valid, y_valid),
                batch_size=batch_size,
                shuffle=False,
            )
        return cls(train, valid)
