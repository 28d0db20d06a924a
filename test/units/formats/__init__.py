from .. import TestUnitBase

__all__ = ['TestUnitBase']
