"""
Tools for the resource files of LookingGlass games such as System Shock. The package `lgres`
exports all `lgres.units.Unit`s which are of type `lgres.units.Entry`; this marker implies that the
unit exposes a shell command:

- `lgmerge` merges resource files, where later files patch the resources of earlier ones.
- `xtlgres` extracts or lists the resources of a resource file.
- `lgunpack` decodes a raw packed resource stream.

The library modules can also be used directly:

1. `lgres.lib.resfile`: reading resource files and decoding their resources
2. `lgres.lib.resmanager`: merging resource files and writing the result
3. `lgres.lib.decompression`: the dictionary decompression of packed resources
4. `lgres.units`: writing custom units and how to use units within Python code.
"""
from __future__ import annotations

__version__ = '0.3.1'
__distribution__ = 'lgres'

import importlib
import pkgutil

from threading import RLock
from typing import TypeVar

from lgres.units import Arg, Entry, Unit

_T = TypeVar('_T')


def _singleton(cls: type[_T]) -> _T:
    return cls()


@_singleton
class __unit_loader__:
    """
    Every unit can be imported from the base module. The unit modules are only imported when the
    map from unit names to module paths is built, which happens on first access.
    """
    units: dict[str, str]
    cache: dict[str, type[Unit]]
    _lock: RLock = RLock()

    def __init__(self):
        self.loaded = False
        self.units = {}
        self.cache = {}

    def __enter__(self):
        self._lock.__enter__()
        return self

    def __exit__(self, et, ev, tb):
        return self._lock.__exit__(et, ev, tb)

    def load(self):
        if self.loaded:
            return
        import lgres.units
        for info in pkgutil.walk_packages(lgres.units.__path__, F'{lgres.units.__name__}.'):
            if info.ispkg:
                continue
            module = importlib.import_module(info.name)
            for name, item in vars(module).items():
                if isinstance(item, type) and issubclass(item, Entry) and item.__module__ == module.__name__:
                    self.units[name] = module.__name__
                    self.cache[name] = item
        self.loaded = True

    def resolve(self, name) -> type[Unit] | None:
        self.load()
        return self.cache.get(name)


def load(name) -> type[Unit] | None:
    with __unit_loader__ as ul:
        return ul.resolve(name)


def __getattr__(name):
    with __unit_loader__ as ul:
        unit = ul.resolve(name)
    if unit is None:
        raise AttributeError(name)
    return unit


def __dir__():
    with __unit_loader__ as ul:
        ul.load()
        return sorted(ul.units, key=lambda x: x.lower()) + [Unit.__name__, Arg.__name__, '__unit_loader__']
