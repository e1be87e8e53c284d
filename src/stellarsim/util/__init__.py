__all__ = [
    "perifocal_to_inertial",
    "to_tuple",
]

from .misc import perifocal_to_inertial, to_tuple
