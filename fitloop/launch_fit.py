import argparse
import os
import sys

import torch

from fitloop.config import Config, learner_from_config
from fitloop.data.provider import DataLoaders
from fitloop.log.logger import Logger
from fitloop.static import *


def get_args_dict() -> dict:
    """
    Processes CLI arguments (i.e., the config and data file locations) and
    returns a dictionary.

    Returns:
        a dictionary with the fields :obj:`fitloop.static.CONFIG_FILE`,
        :obj:`fitloop.static.DATA_FILE` and :obj:`fitloop.static.LOG_FILE`
    """
    parser = argparse.ArgumentParser()
    parser.add_argument(
        CONFIG_FILE_CLI_ARGUMENT,
        dest=CONFIG_FILE,
        required=True,
        help="YAML file describing model, loss, optimizer and callbacks",
    )
    parser.add_argument(
        DATA_FILE_CLI_ARGUMENT,
        dest=DATA_FILE,
        required=True,
        help="file saved with torch.save holding the tuple "
        "(x_train, y_train, x_valid, y_valid)",
    )
    parser.add_argument(
        LOG_FILE_CLI_ARGUMENT,
        dest=LOG_FILE,
        default=None,
        help="where to write the training log",
    )
    return vars(parser.parse_args())


def main():
    """
    Builds a learner from a configuration file and trains it.
    """
    # Necessary to locate dotted paths in projects that use fitloop
    sys.path.append(os.getcwd())

    args = get_args_dict()
    config = Config.from_file(args[CONFIG_FILE])

    x_train, y_train, x_valid, y_valid = torch.load(args[DATA_FILE])
    dls = DataLoaders.from_tensors(
        x_train, y_train, x_valid, y_valid, batch_size=config.get(BATCH_SIZE, 64)
    )

    logger = None
    if args[LOG_FILE] is not None:
        logger = Logger(args[LOG_FILE], mode="w", debug=True)

    learner = learner_from_config(config, dls, logger=logger)
    learner.fit(config.get(EPOCHS, 1))


if __name__ == "__main__":
    main()
