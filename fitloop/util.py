from pydoc import locate
from typing import Tuple, Callable

from fitloop.static import ARGS, CLASS_NAME


def return_class_and_args(
    config: dict, key: str, return_class_name: bool = False
) -> Tuple[Callable[..., object], dict]:
    r"""
    Returns the class and arguments associated to a specific key in the
    configuration file.

    Args:
        config (dict): the configuration dictionary
        key (str): a string representing a particular class in the
            configuration dictionary
        return_class_name (bool): if ``True``, returns the class name as a
            string rather than the class object

    Returns:
        a tuple (class, dict of arguments), or (None, None) if the key
        is not present in the config dictionary
    """
    if key not in config or config[key] is None:
        return None, None
    return class_and_args(config[key], return_class_name, key)


def class_and_args(
    entry, return_class_name: bool = False, key: str = None
) -> Tuple[Callable[..., object], dict]:
    r"""
    Resolves a single configuration entry, either a dotted path or a
    dictionary with ``class_name`` and (optionally) ``args`` fields.

    Args:
        entry (Union[str, dict]): the configuration entry
        return_class_name (bool): if ``True``, returns the class name as a
            string rather than the class object
        key (str): name of the entry, used in error messages only

    Returns:
        a tuple (class, dict of arguments)
    """
    if isinstance(entry, str):
        return (s2c(entry) if not return_class_name else entry), {}
    elif isinstance(entry, dict):
        return (
            (
                s2c(entry[CLASS_NAME])
                if not return_class_name
                else entry[CLASS_NAME]
            ),
            entry[ARGS] if ARGS in entry and entry[ARGS] is not None else {},
        )
    else:
        raise NotImplementedError(
            f"Parameter {key if key is not None else entry} "
            f"has not been formatted properly"
        )


def s2c(class_name: str) -> Callable[..., object]:
    r"""
    Converts a dotted path to the corresponding class

    Args:
         class_name (str): dotted path to class name

    Returns:
        the class to be used
    """
    result = locate(class_name)
    if result is None:
        raise ImportError(
            f"The (dotted) path '{class_name}' is unknown. "
            f"Check your configuration."
        )
    return result
