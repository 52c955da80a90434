import os

from osupp import Beatmap


_here = os.path.dirname(os.path.abspath(__file__))


def example_beatmap(name):
    """Load one of the example beatmaps.

    Parameters
    ----------
    name : str
        The name of the example file to open.
    """
    return Beatmap.from_path(os.path.join(_here, name))


def strain_study():
    """Load the Strain Study beatmap.

    Returns
    -------
    strain_study : Beatmap
        A short standard map with jumps, a stream, sliders and a spinner.
    """
    return example_beatmap('strain_study.osu')
