__all__ = ["cloud", "disk", "orbits", "stellar", "structure"]

from . import orbits
from . import cloud, disk, stellar, structure
