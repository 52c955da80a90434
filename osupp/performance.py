from collections import namedtuple
import logging
import math

from .attributes import DIFFICULTY_ATTRIBUTE_TYPES, OsuPerformanceAttributes
from .mod import Mod
from .score_state import HitResultPriority, ScoreState
from .utils import clamp, power_mean


class ScoreParams(namedtuple('ScoreParams', (
        'accuracy',
        'misses',
        'combo',
        'n300',
        'n100',
        'n50',
        'passed_objects',
        'priority',
        'state',
))):
    """A description of the play to award points for.

    Parameters
    ----------
    accuracy : float, optional
        The accuracy in the range [0, 100]. Used to reconstruct hit counts
        when neither ``state`` nor explicit counts are given. Defaults to
        100.
    misses : int, optional
        The number of misses.
    combo : int, optional
        The highest combo reached. Defaults to the highest combo possible
        with ``misses`` misses.
    n300, n100, n50 : int, optional
        Explicit hit counts. These win over ``accuracy``.
    passed_objects : int, optional
        The number of objects judged so far in a partial play. Defaults to
        every object.
    priority : HitResultPriority, optional
        How to reconstruct hit counts from ``accuracy``.
    state : ScoreState, optional
        A complete play. This wins over every other field but
        ``passed_objects``.

    Notes
    -----
    Negative counts are clamped to zero and accuracy into [0, 100].
    """
    def __new__(cls,
                *,
                accuracy=None,
                misses=0,
                combo=None,
                n300=None,
                n100=None,
                n50=None,
                passed_objects=None,
                priority=HitResultPriority.best_case,
                state=None):
        def count(value):
            return None if value is None else max(0, int(value))

        if accuracy is not None:
            accuracy = clamp(accuracy, 0.0, 100.0)

        return super().__new__(
            cls,
            accuracy,
            max(0, int(misses)),
            count(combo),
            count(n300),
            count(n100),
            count(n50),
            count(passed_objects),
            HitResultPriority(priority),
            state,
        )

    @property
    def has_hit_counts(self):
        return not (self.n300 is None and
                    self.n100 is None and
                    self.n50 is None)

    def score_state(self, total_hits, max_combo):
        """Resolve the play into a complete score state.

        Parameters
        ----------
        total_hits : int
            The number of judged objects, used when reconstructing from
            accuracy.
        max_combo : int
            The highest achievable combo.

        Returns
        -------
        state : ScoreState
            The play with its combo clamped to ``[0, max_combo - misses]``.
        accuracy : float
            The accuracy to score the play with. Reconstructed plays keep the
            requested accuracy, plays with hit counts use the counted one.
        """
        if self.state is not None:
            state = self.state.copy()
            accuracy = state.accuracy()
        elif self.has_hit_counts:
            state = ScoreState.from_hit_results(
                self.n300 or 0,
                self.n100 or 0,
                self.n50 or 0,
                self.misses,
                combo=self.combo,
            )
            accuracy = state.accuracy()
        else:
            accuracy = 100.0 if self.accuracy is None else self.accuracy
            state = ScoreState.from_accuracy(
                total_hits,
                accuracy,
                misses=self.misses,
                priority=self.priority,
                max_combo=self.combo,
            )

        ceiling = max(0, max_combo - state.misses)
        if self.state is None and self.combo is None:
            state.max_combo = ceiling
        else:
            state.max_combo = clamp(state.max_combo, 0, ceiling)
        return state, accuracy


class OsuPerformanceCalculator:
    """Award osu! standard performance points for a play.

    Parameters
    ----------
    attributes : OsuDifficultyAttributes
        The difficulty of the beatmap the play was on.
    mods : int
        The mods the play used.
    """
    star_scaling_factor = 0.0675
    mean_exponent = 1.1
    final_multiplier = 1.12

    combo_exponent = 0.8
    miss_penalty_base = 0.97

    high_ar_threshold = 10.33
    high_ar_bonus = 0.3
    low_ar_threshold = 8.0
    low_ar_bonus = 0.01

    fallback_cap = 1000

    def __init__(self, attributes, mods):
        self.attributes = attributes
        self.mods = mods

    @staticmethod
    def _length_bonus(total_hits):
        bonus = 0.95 + 0.4 * min(1.0, total_hits / 2000)
        if total_hits > 2000:
            bonus += math.log10(total_hits / 2000) * 0.5
        return bonus

    def _base_value(self, strain, total_hits):
        """Scale up a star component.
        """
        raw = (
            (5 * max(1.0, strain / self.star_scaling_factor) - 4) ** 3
        ) / 100000
        return raw * self._length_bonus(total_hits)

    def _ar_bonus(self):
        ar = self.attributes.approach_rate
        bonus = 1.0
        if ar > self.high_ar_threshold:
            bonus += self.high_ar_bonus * (ar - self.high_ar_threshold)
        elif ar < self.low_ar_threshold:
            low_ar_bonus = self.low_ar_bonus * (self.low_ar_threshold - ar)
            if self.mods & Mod.hidden:
                low_ar_bonus *= 2
            bonus += low_ar_bonus
        return bonus

    def _flashlight_bonus(self, total_hits):
        bonus = 1.0 + 0.35 * min(1.0, total_hits / 200)
        if total_hits > 200:
            bonus += 0.3 * min(1.0, (total_hits - 200) / 300)
        if total_hits > 500:
            bonus += (total_hits - 500) / 2000
        return bonus

    def _slider_nerf(self, state):
        """Dampen aim by the slider factor when slider ends were probably
        dropped.
        """
        attributes = self.attributes
        difficult_sliders = attributes.n_sliders * 0.15
        if difficult_sliders <= 0:
            return 1.0

        dropped = clamp(
            min(
                state.n100 + state.n50 + state.misses,
                attributes.max_combo - state.max_combo,
            ),
            0,
            difficult_sliders,
        )
        slider_factor = attributes.slider_factor
        return (
            (1 - slider_factor) *
            (1 - dropped / difficult_sliders) ** 3 +
            slider_factor
        )

    def _speed_accuracy_factor(self, state, accuracy):
        relevant_accuracy_portion = 0.0
        total = state.total_hits
        if total > 0:
            speed_accuracy = (
                state.n300 * 6 + state.n100 * 2 + state.n50 * 0.5
            ) / (total * 6)
            relevant_accuracy_portion = (
                speed_accuracy ** 8 *
                min(1.0, total / 1000) ** 0.3
            )
        return 0.5 + (relevant_accuracy_portion * 14.5 + accuracy / 200) / 2

    def _accuracy_value(self, accuracy, total_hits):
        od = self.attributes.overall_difficulty
        length_factor = min(1.15, (total_hits / 1000) ** 0.3)
        return (
            (accuracy / 100) ** 15 * 2.5 *
            od ** 2 / 2500 *
            length_factor ** 1.1
        )

    def calculate(self, state, accuracy):
        """Award points for a resolved play.

        Parameters
        ----------
        state : ScoreState
            The play, with its combo already clamped.
        accuracy : float
            The accuracy in the range [0, 100].

        Returns
        -------
        performance : OsuPerformanceAttributes
            The awarded points.
        """
        attributes = self.attributes
        mods = self.mods
        total_hits = state.total_hits
        if total_hits == 0:
            return OsuPerformanceAttributes(
                pp=0.0,
                aim_pp=0.0,
                speed_pp=0.0,
                accuracy_pp=0.0,
                flashlight_pp=0.0,
                effective_miss_count=0,
                difficulty=attributes,
            )

        hidden = mods & Mod.hidden
        flashlight = mods & Mod.flashlight
        ar = attributes.approach_rate

        aim = self._base_value(attributes.aim_strain, total_hits)
        speed = self._base_value(attributes.speed_strain, total_hits)
        accuracy_value = self._accuracy_value(accuracy, total_hits)
        if flashlight:
            flashlight_value = (
                attributes.aim_strain ** 2 * 25 *
                self._length_bonus(total_hits) *
                (0.5 + accuracy / 200)
            )
        else:
            flashlight_value = 0.0

        aim *= self._ar_bonus()

        if hidden:
            aim *= 1 + min(0.18, 0.01 * (12 - ar))
            speed *= 1 + min(0.15, 0.01 * (12 - ar))
            accuracy_value *= 1.02
            flashlight_value *= 1.02

        if flashlight:
            aim *= self._flashlight_bonus(total_hits)

        if attributes.max_combo > 0:
            combo_scale = min(
                1.0,
                (state.max_combo / attributes.max_combo) **
                self.combo_exponent,
            )
        else:
            combo_scale = 1.0
        miss_penalty = self.miss_penalty_base ** state.misses

        aim *= combo_scale * miss_penalty
        speed *= combo_scale * miss_penalty
        flashlight_value *= combo_scale * miss_penalty

        aim *= 0.5 + accuracy / 200
        aim *= self._slider_nerf(state)
        speed *= self._speed_accuracy_factor(state, accuracy)

        final_multiplier = self.final_multiplier
        if mods & Mod.no_fail:
            final_multiplier *= 0.9
        if mods & Mod.spun_out:
            final_multiplier *= 0.95
        if mods & Mod.relax:
            aim *= 0.7
            speed = 0.0
            flashlight_value *= 0.7
            final_multiplier *= 0.6

        pp = power_mean(
            (aim, speed, accuracy_value, flashlight_value),
            self.mean_exponent,
        ) * final_multiplier

        return OsuPerformanceAttributes(
            pp=pp,
            aim_pp=aim,
            speed_pp=speed,
            accuracy_pp=accuracy_value,
            flashlight_pp=flashlight_value,
            effective_miss_count=state.misses,
            difficulty=attributes,
        )

    def fallback(self, accuracy, misses):
        """Estimate points from the star rating alone.
        """
        attributes = self.attributes
        pp = (
            attributes.stars ** 2.5 * 1.5 *
            (accuracy / 100) *
            self.miss_penalty_base ** misses
        )
        if math.isnan(pp):
            pp = 0.0
        pp = clamp(pp, 0.0, self.fallback_cap)

        return OsuPerformanceAttributes(
            pp=pp,
            aim_pp=pp * 0.6,
            speed_pp=pp * 0.3,
            accuracy_pp=pp * 0.1,
            flashlight_pp=0.0,
            effective_miss_count=misses,
            difficulty=attributes,
        )


_calculators = {
    attributes_type: OsuPerformanceCalculator
    for attributes_type in DIFFICULTY_ATTRIBUTE_TYPES.values()
}


def calculate_performance(attributes, score=None, mods=None):
    """Calculate the performance points for a play.

    Parameters
    ----------
    attributes : OsuDifficultyAttributes
        The difficulty of the beatmap. These must have been calculated with
        the same mods and settings as the play.
    score : ScoreParams or ScoreState, optional
        The play. Defaults to a full combo with 100% accuracy.
    mods : int, optional
        The mods of the play. Defaults to the mods of ``attributes``.

    Returns
    -------
    performance : OsuPerformanceAttributes
        The awarded points. This is always finite and non-negative.

    Raises
    ------
    ValueError
        Raised when ``attributes`` is missing.
    TypeError
        Raised when ``attributes`` are not difficulty attributes of a
        supported mode.

    Examples
    --------
    >>> calculate_performance(
    ...     attributes,
    ...     ScoreParams(accuracy=98.5, misses=1, combo=1200),
    ... ).pp
    """
    if attributes is None:
        raise ValueError('difficulty attributes are required')

    try:
        calculator_type = _calculators[type(attributes)]
    except KeyError:
        raise TypeError(
            'expected difficulty attributes, got'
            f' {type(attributes).__qualname__}',
        )

    if score is None:
        score = ScoreParams()
    elif isinstance(score, ScoreState):
        score = ScoreParams(state=score)

    if mods is None:
        mods = attributes.mods

    calculator = calculator_type(attributes, mods)

    accuracy = 100.0 if score.accuracy is None else score.accuracy
    misses = score.misses
    try:
        total_hits = score.passed_objects
        if total_hits is None:
            total_hits = attributes.n_objects
        state, accuracy = score.score_state(total_hits, attributes.max_combo)
        misses = state.misses
        performance = calculator.calculate(state, accuracy)
    except Exception:
        logging.exception(
            f'failed to calculate performance with {attributes!r}',
        )
        return calculator.fallback(accuracy, misses)

    if not (math.isfinite(performance.pp) and performance.pp >= 0):
        logging.warning(
            f'non-finite performance {performance.pp!r} with {attributes!r},'
            ' falling back to a star based estimate',
        )
        return calculator.fallback(accuracy, misses)

    return performance
