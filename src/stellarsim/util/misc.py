import numpy as np
from scipy.spatial.transform import Rotation as R


def perifocal_to_inertial(vectors, inclination, lan, argp):
    """
    Rotate vectors from the perifocal (orbital plane) frame to the
    reference frame: argument of periapsis about z, inclination about x,
    then longitude of the ascending node about z.

    Args:
        vectors (numpy.ndarray):
            Array of shape (..., 3) in the perifocal frame
        inclination (float):
            Inclination in radians
        lan (float):
            Longitude of the ascending node in radians
        argp (float):
            Argument of periapsis in radians

    Returns:
        numpy.ndarray:
            Vectors in the reference frame
    """
    vectors = np.asarray(vectors, dtype=float)
    rot = R.from_euler("ZXZ", [lan, inclination, argp])
    return rot.apply(vectors.reshape(-1, 3)).reshape(vectors.shape)


def to_tuple(vector):
    """Plain float triple from a length-3 array."""
    return tuple(float(val) for val in np.asarray(vector, dtype=float).reshape(3))
