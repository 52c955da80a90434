from .difficulty import strain_model
from .performance import ScoreParams, calculate_performance
from .score_state import ScoreState


class GradualDifficulty:
    """Difficulty attributes of a beatmap one object at a time.

    The cursor only moves forward. The strain model is built once, each step
    reads the attributes of the first ``position`` objects from it.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap to walk.
    settings : DifficultySettings, optional
        The mods and overrides to apply.

    Examples
    --------
    .. code-block:: python

       gradual = GradualDifficulty(beatmap)
       for attributes in gradual:
           print(attributes.stars)
    """
    def __init__(self, beatmap, settings=None):
        self._model = strain_model(beatmap, settings)
        self._position = 0

    @property
    def n_objects(self):
        return len(self._model)

    @property
    def position(self):
        """The number of objects processed so far.
        """
        return self._position

    @property
    def remaining(self):
        return self.n_objects - self._position

    @property
    def current(self):
        """The attributes at the cursor, ``None`` before the first step.
        """
        if self._position == 0:
            return None
        return self._model.attributes(self._position)

    def next(self):
        """Process one more object.

        Returns
        -------
        attributes : OsuDifficultyAttributes or None
            The attributes including the new object, or ``None`` when every
            object was already processed.
        """
        return self.nth(1)

    def nth(self, n):
        """Process ``n`` more objects.

        Parameters
        ----------
        n : int
            The number of objects to advance by, at least 1.

        Returns
        -------
        attributes : OsuDifficultyAttributes or None
            The attributes including the ``n``th next object. When the map
            has fewer objects left the cursor stops at the end and the
            attributes of the whole map are returned. ``None`` when every
            object was already processed.
        """
        if n < 1:
            raise ValueError(f'n must be at least 1, got {n}')

        if self._position >= self.n_objects:
            return None

        self._position = min(self._position + n, self.n_objects)
        return self._model.attributes(self._position)

    def at_index(self, index):
        """Process every object up to and including ``index``.

        Parameters
        ----------
        index : int
            The index of the last object to include.

        Returns
        -------
        attributes : OsuDifficultyAttributes or None
            The attributes of the objects ``[0, index]``, or ``None`` when
            ``index`` is past the end of the map.

        Raises
        ------
        ValueError
            Raised when ``index`` is negative or behind the cursor.
        """
        if index < 0:
            raise ValueError(f'index must be non-negative, got {index}')
        if index + 1 < self._position:
            raise ValueError(
                f'cannot move back to index {index}, already at'
                f' index {self._position - 1}',
            )
        if index >= self.n_objects:
            return None

        self._position = index + 1
        return self._model.attributes(self._position)

    def last(self):
        """Process every remaining object.

        Returns
        -------
        attributes : OsuDifficultyAttributes or None
            The attributes of the whole map, or ``None`` when the map has no
            objects.
        """
        if not self.n_objects:
            return None

        self._position = self.n_objects
        return self._model.attributes(self._position)

    def attributes(self, length=None):
        """The attributes of the first ``length`` objects, without moving the
        cursor.
        """
        return self._model.attributes(length)

    def reset(self):
        """Move the cursor back to the start of the map.
        """
        self._position = 0

    def __iter__(self):
        while True:
            attributes = self.next()
            if attributes is None:
                return
            yield attributes

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self._position}/{self.n_objects}'
            f' of {self._model.beatmap!r}>'
        )


class GradualPerformance:
    """Performance points of a play one object at a time.

    The driver only tracks the structural position in the map; the play at
    each step is whatever the caller passes in.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap being played.
    settings : DifficultySettings, optional
        The mods and overrides to apply.
    """
    def __init__(self, beatmap, settings=None):
        self._difficulty = GradualDifficulty(beatmap, settings)

    @property
    def n_objects(self):
        return self._difficulty.n_objects

    @property
    def position(self):
        return self._difficulty.position

    @property
    def remaining(self):
        return self._difficulty.remaining

    def _evaluate(self, attributes, score):
        if attributes is None:
            return None

        if score is None:
            score = ScoreParams()
        elif isinstance(score, ScoreState):
            score = ScoreParams(state=score)

        position = self._difficulty.position
        if position < self.n_objects:
            score = score._replace(passed_objects=position)
        return calculate_performance(attributes, score)

    def next(self, score=None):
        """Process one more object and award points for ``score``.

        Parameters
        ----------
        score : ScoreState or ScoreParams, optional
            The play so far. Defaults to a perfect play.

        Returns
        -------
        performance : OsuPerformanceAttributes or None
            The points, or ``None`` when every object was already processed.
        """
        return self._evaluate(self._difficulty.next(), score)

    def nth(self, n, score=None):
        """Process ``n`` more objects and award points for ``score``.
        """
        return self._evaluate(self._difficulty.nth(n), score)

    def at_index(self, index, score=None):
        """Process every object up to and including ``index`` and award points
        for ``score``.
        """
        return self._evaluate(self._difficulty.at_index(index), score)

    def last(self, score=None):
        """Process every remaining object and award points for ``score``.
        """
        return self._evaluate(self._difficulty.last(), score)

    def reset(self):
        self._difficulty.reset()

    def for_accuracies(self, accuracies, misses=0, combo=None):
        """Award points for several accuracies on the whole map.

        Parameters
        ----------
        accuracies : iterable[float]
            The accuracies in the range [0, 100].
        misses : int, optional
            The number of misses in each play.
        combo : int, optional
            The combo of each play.

        Returns
        -------
        performances : dict[float, OsuPerformanceAttributes]
            The points for each accuracy. The cursor does not move.
        """
        attributes = self._difficulty.attributes()
        return {
            accuracy: calculate_performance(
                attributes,
                ScoreParams(accuracy=accuracy, misses=misses, combo=combo),
            )
            for accuracy in accuracies
        }
