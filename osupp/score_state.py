from enum import Enum, unique

from .utils import accuracy as calculate_accuracy, clamp


@unique
class HitResult(Enum):
    """The judgements a hit object or a part of one can receive.
    """
    great = 'great'
    good = 'good'
    meh = 'meh'
    miss = 'miss'
    geki = 'geki'
    katu = 'katu'
    slider_end = 'slider_end'
    large_tick = 'large_tick'
    small_tick = 'small_tick'


@unique
class HitResultPriority(Enum):
    """Which way to lean when many hit count distributions fit an accuracy.
    """
    #: Keep as many 300s as possible.
    best_case = 'best_case'
    #: Keep as many 50s as possible.
    worst_case = 'worst_case'


# the value of each judgement in units of a 50
_great_value = 6
_good_value = 2
_meh_value = 1


class ScoreState:
    """The outcome of a (possibly partial) play.

    Parameters
    ----------
    max_combo : int, optional
        The highest combo reached.
    misses : int, optional
        The number of misses.
    n300, n100, n50 : int, optional
        The number of 300s, 100s and 50s.
    n_geki, n_katu : int, optional
        The number of gekis and katus.
    slider_end_hits, large_tick_hits, small_tick_hits : int, optional
        The number of slider parts hit.

    Notes
    -----
    Negative counts are clamped to zero.
    """
    _fields = (
        'max_combo',
        'misses',
        'n300',
        'n100',
        'n50',
        'n_geki',
        'n_katu',
        'slider_end_hits',
        'large_tick_hits',
        'small_tick_hits',
    )

    def __init__(self,
                 max_combo=0,
                 misses=0,
                 n300=0,
                 n100=0,
                 n50=0,
                 n_geki=0,
                 n_katu=0,
                 slider_end_hits=0,
                 large_tick_hits=0,
                 small_tick_hits=0):
        self.max_combo = max(0, max_combo)
        self.misses = max(0, misses)
        self.n300 = max(0, n300)
        self.n100 = max(0, n100)
        self.n50 = max(0, n50)
        self.n_geki = max(0, n_geki)
        self.n_katu = max(0, n_katu)
        self.slider_end_hits = max(0, slider_end_hits)
        self.large_tick_hits = max(0, large_tick_hits)
        self.small_tick_hits = max(0, small_tick_hits)

    @property
    def total_hits(self):
        """The number of judged hit objects, including misses.
        """
        return self.n300 + self.n100 + self.n50 + self.misses

    def accuracy(self):
        """The accuracy of this play.

        Returns
        -------
        accuracy : float
            The accuracy in the range [0, 100]. A state with no judged hits
            is 100% accurate.
        """
        return calculate_accuracy(
            self.n300,
            self.n100,
            self.n50,
            self.misses,
        ) * 100

    def add_hit_result(self, result):
        """Record one more judgement.

        Parameters
        ----------
        result : HitResult
            The judgement to add. Everything but a miss extends the combo.

        Returns
        -------
        self : ScoreState
            This state, to allow chaining.
        """
        result = HitResult(result)
        if result is HitResult.miss:
            self.misses += 1
            return self

        attr = _hit_result_fields[result]
        setattr(self, attr, getattr(self, attr) + 1)
        self.max_combo += 1
        return self

    def copy(self):
        return type(self)(**{f: getattr(self, f) for f in self._fields})

    def __eq__(self, other):
        if not isinstance(other, ScoreState):
            return NotImplemented
        return all(
            getattr(self, f) == getattr(other, f) for f in self._fields
        )

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self.n300}/{self.n100}/{self.n50}'
            f'/{self.misses}x, combo={self.max_combo},'
            f' {self.accuracy():.2f}%>'
        )

    @classmethod
    def from_hit_results(cls, n300, n100, n50, misses, combo=None):
        """Create a state from explicit hit counts.

        Parameters
        ----------
        n300, n100, n50, misses : int
            The hit counts.
        combo : int, optional
            The highest combo reached. Defaults to the number of non-miss
            hits.

        Returns
        -------
        state : ScoreState
            The new state.
        """
        if combo is None:
            combo = max(0, n300) + max(0, n100) + max(0, n50)

        return cls(
            max_combo=combo,
            misses=misses,
            n300=n300,
            n100=n100,
            n50=n50,
        )

    @classmethod
    def from_accuracy(cls,
                      total_hits,
                      accuracy,
                      misses=0,
                      priority=HitResultPriority.best_case,
                      max_combo=None):
        """Reconstruct plausible hit counts for an accuracy.

        Parameters
        ----------
        total_hits : int or Beatmap
            The number of judged objects, or a beatmap whose objects are all
            judged.
        accuracy : float
            The target accuracy in the range [0, 100]. Values outside of the
            range are clamped.
        misses : int, optional
            The number of misses, clamped to ``[0, total_hits]``.
        priority : HitResultPriority, optional
            Which distribution to produce when many fit.
        max_combo : int, optional
            The combo of the play. Defaults to the highest combo possible with
            ``misses`` misses.

        Returns
        -------
        state : ScoreState
            The reconstructed state.

        Notes
        -----
        The best case distribution starts from all 300s and demotes one hit
        at a time to the next lower judgement while the accuracy stays at or
        above the target, so the result is never less accurate than asked
        for. The worst case distribution starts from all 50s and promotes
        one hit at a time until the accuracy reaches the target, so it
        stops on the first distribution at or above it. Both only move one
        hit between adjacent judgements per step.
        """
        if hasattr(total_hits, 'hit_objects'):
            beatmap = total_hits
            total_hits = beatmap.n_objects
            combo_ceiling = beatmap.max_combo
        else:
            total_hits = max(0, int(total_hits))
            combo_ceiling = total_hits

        misses = clamp(misses, 0, total_hits)
        accuracy = clamp(accuracy, 0.0, 100.0)

        hits = total_hits - misses
        target = accuracy / 100 * _great_value * total_hits

        distribute = _distributions[HitResultPriority(priority)]
        n300, n100, n50 = distribute(hits, target)

        if max_combo is None:
            max_combo = combo_ceiling - misses

        return cls(
            max_combo=max_combo,
            misses=misses,
            n300=n300,
            n100=n100,
            n50=n50,
        )


_hit_result_fields = {
    HitResult.great: 'n300',
    HitResult.good: 'n100',
    HitResult.meh: 'n50',
    HitResult.geki: 'n_geki',
    HitResult.katu: 'n_katu',
    HitResult.slider_end: 'slider_end_hits',
    HitResult.large_tick: 'large_tick_hits',
    HitResult.small_tick: 'small_tick_hits',
}


def _distribute_best_case(hits, target):
    n300 = hits
    n100 = 0
    n50 = 0
    score = _great_value * hits

    step = _great_value - _good_value
    while n300 > 0 and score - step >= target:
        n300 -= 1
        n100 += 1
        score -= step

    step = _good_value - _meh_value
    while n100 > 0 and score - step >= target:
        n100 -= 1
        n50 += 1
        score -= step

    return n300, n100, n50


def _distribute_worst_case(hits, target):
    n300 = 0
    n100 = 0
    n50 = hits
    score = _meh_value * hits

    step = _good_value - _meh_value
    while n50 > 0 and score < target:
        n50 -= 1
        n100 += 1
        score += step

    step = _great_value - _good_value
    while n100 > 0 and score < target:
        n100 -= 1
        n300 += 1
        score += step

    return n300, n100, n50


_distributions = {
    HitResultPriority.best_case: _distribute_best_case,
    HitResultPriority.worst_case: _distribute_worst_case,
}
