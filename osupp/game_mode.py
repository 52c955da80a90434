from enum import IntEnum, unique


@unique
class GameMode(IntEnum):
    """The various game modes in osu!.
    """
    standard = 0
    taiko = 1
    ctb = 2
    mania = 3

    @classmethod
    def parse(cls, value):
        """Parse a game mode from its name or number.

        Parameters
        ----------
        value : str or int
            The mode. Names are case insensitive and ``osu`` and ``catch``
            are accepted as aliases.

        Returns
        -------
        mode : GameMode
            The parsed mode.

        Raises
        ------
        ValueError
            Raised when ``value`` does not name a game mode.
        """
        if isinstance(value, int):
            return cls(value)

        name = value.strip().lower()
        if name.isdigit():
            return cls(int(name))

        name = _aliases.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f'unknown game mode: {value!r}')


_aliases = {
    'osu': 'standard',
    'std': 'standard',
    'catch': 'ctb',
    'fruits': 'ctb',
}
