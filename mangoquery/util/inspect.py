import inspect
from functools import lru_cache
from typing import Callable, Mapping, Tuple


@lru_cache(100)
def get_function_defaults(for_func: Callable) -> dict:
    """ Get a dict of keyword arguments that have default values: {name: default} """
    return {name: param.default
            for name, param in inspect.signature(for_func).parameters.items()
            if param.default is not inspect.Parameter.empty}


def pluck_kwargs_from(dct: Mapping, for_func: Callable, skip: Tuple[str] = ()) -> dict:
    """ Analyze a function, pluck the keyword arguments it needs from a dict """
    return {k: dct.get(k, default)
            for k, default in get_function_defaults(for_func).items()
            if k not in skip}
