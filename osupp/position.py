from collections import namedtuple
import numpy as np


class Position(namedtuple('Position', 'x y')):
    """A position on the osu! screen.

    Parameters
    ----------
    x : int or float
        The x coordinate in the range.
    y : int or float
        The y coordinate in the range.

    Notes
    -----
    The visible region of the osu! standard playfield is [0, 512] by [0, 384].
    """
    x_max = 512
    y_max = 384

    def scale(self, factor):
        """Scale both coordinates by ``factor``.
        """
        return type(self)(self.x * factor, self.y * factor)

    def __sub__(self, other):
        return type(self)(self.x - other.x, self.y - other.y)


#: The center of the playfield, where spinners are treated as sitting.
playfield_center = Position(Position.x_max / 2, Position.y_max / 2)


def distance(start, end):
    return float(np.sqrt((start.x - end.x) ** 2 + (start.y - end.y) ** 2))
