from .. import TestUnitBase

__all__ = ['TestUnitBase', 'SHODAN']

SHODAN = (
    "Look at you, hacker: a pathetic creature of meat and bone, panting and sweating as you run "
    "through my corridors. How can you challenge a perfect, immortal machine?"
)
