import enum
from functools import reduce
import operator as op


class Mod(enum.IntEnum):
    """The mods in osu!
    """
    no_fail = 1
    easy = 1 << 1
    touch_device = 1 << 2
    hidden = 1 << 3
    hard_rock = 1 << 4
    sudden_death = 1 << 5
    double_time = 1 << 6
    relax = 1 << 7
    half_time = 1 << 8
    nightcore = 1 << 9  # always used with double_time
    flashlight = 1 << 10
    autoplay = 1 << 11
    spun_out = 1 << 12
    auto_pilot = 1 << 13
    perfect = 1 << 14  # always used with sudden_death
    fade_in = 1 << 20
    cinema = 1 << 22
    target_practice = 1 << 23
    score_v2 = 1 << 29

    @classmethod
    def pack(cls, **kwargs):
        """Pack a bitmask from explicit bit values.

        Parameters
        ----------
        kwargs
            The names of the fields and their status. Any fields not explicitly
            passed will be set to False.

        Returns
        -------
        bitmask : int
            The packed bitmask.
        """
        members = cls.__members__
        try:
            return reduce(
                op.or_,
                (members[k] * bool(v) for k, v in kwargs.items()),
                0,
            )
        except KeyError as e:
            raise TypeError(f'{e} is not a member of {cls.__qualname__}')

    @classmethod
    def unpack(cls, bitmask):
        """Unpack a bitmask into a dictionary from field name to field state.

        Parameters
        ----------
        bitmask : int
            The bitmask to unpack.

        Returns
        -------
        status : dict[str, bool]
            The mapping from field name to field status.
        """
        return {k: bool(bitmask & v) for k, v in cls.__members__.items()}

    @classmethod
    def parse(cls, cs):
        """Parse a mod mask out of a list of shortened mod names.

        Parameters
        ----------
        cs : str
            The mod string, for example ``'HDHR'``. ``'NM'`` and the empty
            string mean no mods.

        Returns
        -------
        mod_mask : int
            The mod mask.
        """
        cs = cs.strip().lstrip('+')
        if len(cs) % 2 != 0:
            raise ValueError(f'malformed mods: {cs!r}')

        cs = cs.lower()
        mod = 0
        for n in range(0, len(cs), 2):
            try:
                mod |= _short_names[cs[n:n + 2]]
            except KeyError:
                raise ValueError(f'unknown mod: {cs[n:n + 2]!r}')

        return mod

    @classmethod
    def names(cls, mods):
        """The short names of the mods set in a mask, in bit order.

        Parameters
        ----------
        mods : int
            The mod mask.

        Returns
        -------
        names : list[str]
            The upper case short names, for example ``['HD', 'HR']``.
        """
        return [
            name.upper()
            for name, mod in _short_names.items()
            if mod and mods & mod
        ]


_short_names = {
    'nm': 0,
    'nf': Mod.no_fail,
    'ez': Mod.easy,
    'td': Mod.touch_device,
    'hd': Mod.hidden,
    'hr': Mod.hard_rock,
    'sd': Mod.sudden_death,
    'dt': Mod.double_time,
    'rx': Mod.relax,
    'ht': Mod.half_time,
    'nc': Mod.nightcore,
    'fl': Mod.flashlight,
    'so': Mod.spun_out,
    'ap': Mod.auto_pilot,
    'pf': Mod.perfect,
}


def ar_to_ms(ar):
    """Convert an approach rate value to milliseconds of time that an element
    appears on the screen before being hit.

    Parameters
    ----------
    ar : float
        The approach rate.

    Returns
    -------
    milliseconds : float
        The number of milliseconds that an element appears on the screen before
         being hit at the given approach rate.

    See Also
    --------
    :func:`osupp.mod.ms_to_ar`
    """
    # NOTE: The formula for ar_to_ms is different for ar >= 5 and ar < 5
    # see: https://osu.ppy.sh/wiki/Song_Setup#Approach_Rate
    if ar >= 5:
        return 1950 - (ar * 150)
    else:
        return 1800 - (ar * 120)


def ms_to_ar(ms):
    """Convert milliseconds to hit an element into an approach rate value.

    Parameters
    ----------
    ms : float
        The number of milliseconds that an element appears on the screen before
        being hit.

    Returns
    -------
    ar : float
        The approach rate value that produces the given millisecond value.

    See Also
    --------
    :func:`osupp.mod.ar_to_ms`
    """
    # the lines cross at 1200ms (ar 5); slower approaches use the steeper
    # formula
    if ms > 1200:
        return (1800 - ms) / 120
    return (1950 - ms) / 150


def od_to_ms_300(od):
    """Convert an overall difficulty value into the milliseconds to hit an
    object at maximum accuracy.

    Parameters
    ----------
    od : float
        The overall difficulty.

    Returns
    -------
    ms : float
        The number of milliseconds to hit an object at maximum accuracy.

    See Also
    --------
    :func:`osupp.mod.ms_300_to_od`
    """
    return 80 - 6 * od


def ms_300_to_od(ms):
    """Convert the milliseconds to score a 300 into an OD value.

    Parameters
    ----------
    ms : float
        The length of the 300 window in milliseconds.

    Returns
    -------
    od : float
        The OD value that produces a 300 window of length ``ms``.

    See Also
    --------
    :func:`osupp.mod.od_to_ms_300`
    """
    return (80 - ms) / 6


def circle_radius(cs):
    """Compute the ``CS`` attribute into a circle radius in osu! pixels.

    Parameters
    ----------
    cs : float
        The circle size.

    Returns
    -------
    radius : float
        The radius in osu! pixels.
    """
    return (512 / 16) * (1 - 0.7 * (cs - 5) / 5)


def clock_rate(mods):
    """The speed multiplier implied by a mod mask.

    Parameters
    ----------
    mods : int
        The mod mask.

    Returns
    -------
    clock_rate : float
        1.5 for double time or nightcore, 0.75 for half time, otherwise 1.
    """
    if mods & (Mod.double_time | Mod.nightcore):
        return 1.5
    if mods & Mod.half_time:
        return 0.75
    return 1.0


# rate changes closer to 1 than this leave the time based settings untouched
_clock_rate_epsilon = 0.001


def _scale_setting(value, mods, hard_rock_factor):
    if mods & Mod.hard_rock:
        value = min(10, value * hard_rock_factor)
    if mods & Mod.easy:
        value *= 0.5
    return value


def adjust_ar(ar, mods, clock_rate=1.0):
    """Apply the effects of mods and a clock rate to an approach rate.

    Parameters
    ----------
    ar : float
        The base approach rate.
    mods : int
        The mod mask.
    clock_rate : float, optional
        The speed multiplier.

    Returns
    -------
    ar : float
        The approach rate the player effectively sees.

    Notes
    -----
    The clock rate acts on the preempt time, not on the approach rate itself,
    so the value is moved into milliseconds, divided and moved back.
    """
    ar = _scale_setting(ar, mods, 1.4)
    if abs(clock_rate - 1) >= _clock_rate_epsilon:
        ar = ms_to_ar(ar_to_ms(ar) / clock_rate)
    return ar


def adjust_od(od, mods, clock_rate=1.0):
    """Apply the effects of mods and a clock rate to an overall difficulty.

    Parameters
    ----------
    od : float
        The base overall difficulty.
    mods : int
        The mod mask.
    clock_rate : float, optional
        The speed multiplier.

    Returns
    -------
    od : float
        The overall difficulty implied by the effective 300 hit window.
    """
    od = _scale_setting(od, mods, 1.4)
    if abs(clock_rate - 1) >= _clock_rate_epsilon:
        od = ms_300_to_od(od_to_ms_300(od) / clock_rate)
    return od


def adjust_cs(cs, mods):
    """Apply the effects of mods to a circle size.
    """
    return _scale_setting(cs, mods, 1.3)


def adjust_hp(hp, mods):
    """Apply the effects of mods to a drain rate.
    """
    return _scale_setting(hp, mods, 1.4)
