class lazyval:
    """Decorator to lazily compute and cache a value.

    Notes
    -----
    This is a non-data descriptor: once the value is stored in the instance
    ``__dict__`` it shadows the descriptor and ``fget`` is not called again.
    """
    def __init__(self, fget):
        self._fget = fget
        self._name = None

    def __set_name__(self, owner, name):
        self._name = name

    def __get__(self, instance, owner):
        if instance is None:
            return self

        value = self._fget(instance)
        vars(instance)[self._name] = value
        return value


class no_default:
    """Sentinel type; this should not be instantiated.

    This type is used so functions can tell the difference between no argument
    passed and an explicit value passed even if ``None`` is a valid value.

    Notes
    -----
    This is implemented as a type to make functions which use this as a default
    argument serializable.
    """
    def __new__(cls):
        raise TypeError('cannot create instances of sentinel type')


def accuracy(count_300, count_100, count_50, count_miss):
    """Calculate osu! standard accuracy from discrete hit counts.

    Parameters
    ----------
    count_300 : int
        The number of 300's hit.
    count_100 : int
        The number of 100's hit.
    count_50 : int
        The number of 50's hit.
    count_miss : int
        The number of misses

    Returns
    -------
    accuracy : float
        The accuracy in the range [0, 1]. A play with no judged hits has an
        accuracy of 1.
    """
    total_hits = count_300 + count_100 + count_50 + count_miss
    if total_hits <= 0:
        return 1.0

    points_of_hits = count_300 * 300 + count_100 * 100 + count_50 * 50
    return points_of_hits / (total_hits * 300)


def clamp(value, lower, upper):
    """Clip ``value`` into the closed range ``[lower, upper]``.
    """
    return max(lower, min(upper, value))


def power_mean(values, p):
    """The generalized mean of some non-negative values.

    Parameters
    ----------
    values : iterable[float]
        The values to combine.
    p : float
        The exponent.

    Returns
    -------
    mean : float
        ``(sum(v ** p for v in values)) ** (1 / p)``
    """
    return sum(v ** p for v in values) ** (1 / p)
