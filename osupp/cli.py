from contextlib import contextmanager

import click

from .game_mode import GameMode
from .mod import Mod


def maybe_show_progress(it, show_progress, **kwargs):
    """Optionally show a progress bar for the given iterator.

    Parameters
    ----------
    it : iterable
        The underlying iterator.
    show_progress : bool
        Should progress be shown.
    **kwargs
        Forwarded to the click progress bar.

    Returns
    -------
    itercontext : context manager
        A context manager whose enter is the actual iterator to use.

    Examples
    --------
    .. code-block:: python

       with maybe_show_progress([1, 2, 3], True) as ns:
            for n in ns:
                ...
    """
    if show_progress:
        return click.progressbar(it, **kwargs)

    @contextmanager
    def ctx():
        yield it

    return ctx()


class ModsParamType(click.ParamType):
    """A click parameter for mod strings like ``HDHR``.
    """
    name = 'mods'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return Mod.parse(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


class GameModeParamType(click.ParamType):
    """A click parameter for game mode names or numbers.
    """
    name = 'mode'

    def convert(self, value, param, ctx):
        if isinstance(value, GameMode):
            return value
        try:
            return GameMode.parse(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


MODS = ModsParamType()
GAME_MODE = GameModeParamType()


def format_mods(mods):
    names = Mod.names(mods)
    if not names:
        return 'NM'
    return ''.join(names)
