from collections import namedtuple

from .game_mode import GameMode


class OsuDifficultyAttributes(namedtuple('OsuDifficultyAttributes', (
        'mode',
        'mods',
        'stars',
        'aim_strain',
        'speed_strain',
        'flashlight_strain',
        'slider_factor',
        'approach_rate',
        'overall_difficulty',
        'circle_size',
        'hp_drain_rate',
        'preempt',
        'hit_window_great',
        'clock_rate',
        'max_combo',
        'n_circles',
        'n_sliders',
        'n_spinners',
        'n_hold_notes',
))):
    """The difficulty of an osu! standard beatmap under some mods.

    Parameters
    ----------
    mode : GameMode
        Always :data:`GameMode.standard`.
    mods : int
        The mod mask the attributes were calculated with.
    stars : float
        The star rating.
    aim_strain : float
        The aim component of the star rating.
    speed_strain : float
        The speed component of the star rating.
    flashlight_strain : float
        The flashlight component of the star rating, 0 without flashlight.
    slider_factor : float
        The ratio of aim difficulty without slider contributions to aim
        difficulty with them, in the range [0, 1].
    approach_rate : float
        The approach rate after mods and clock rate.
    overall_difficulty : float
        The overall difficulty after mods and clock rate.
    circle_size : float
        The circle size after mods.
    hp_drain_rate : float
        The drain rate after mods.
    preempt : float
        The milliseconds an object is visible before it must be hit, in
        real time.
    hit_window_great : float
        The 300 hit window in milliseconds, in real time.
    clock_rate : float
        The speed multiplier.
    max_combo : int
        The highest achievable combo.
    n_circles, n_sliders, n_spinners, n_hold_notes : int
        The object counts. Hold notes only appear in maps converted from
        mania.
    """
    @property
    def n_objects(self):
        return (
            self.n_circles +
            self.n_sliders +
            self.n_spinners +
            self.n_hold_notes
        )


class OsuPerformanceAttributes(namedtuple('OsuPerformanceAttributes', (
        'pp',
        'aim_pp',
        'speed_pp',
        'accuracy_pp',
        'flashlight_pp',
        'effective_miss_count',
        'difficulty',
))):
    """The performance points awarded for a play.

    Parameters
    ----------
    pp : float
        The total performance points.
    aim_pp, speed_pp, accuracy_pp, flashlight_pp : float
        The contribution of each skill before they are combined.
    effective_miss_count : float
        The miss count the penalties were computed with.
    difficulty : OsuDifficultyAttributes
        The difficulty the points were derived from.
    """
    @property
    def stars(self):
        return self.difficulty.stars

    @property
    def max_combo(self):
        return self.difficulty.max_combo


#: The difficulty attribute type produced and consumed for each game mode.
DIFFICULTY_ATTRIBUTE_TYPES = {
    GameMode.standard: OsuDifficultyAttributes,
}
