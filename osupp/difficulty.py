from collections import namedtuple
import logging
import math

import numpy as np

from .attributes import DIFFICULTY_ATTRIBUTE_TYPES, OsuDifficultyAttributes
from .beatmap import Circle, HoldNote, Slider, Spinner
from .game_mode import GameMode
from .mod import (
    Mod,
    adjust_ar,
    adjust_cs,
    adjust_hp,
    adjust_od,
    ar_to_ms,
    circle_radius,
    clock_rate as mods_clock_rate,
    od_to_ms_300,
)
from .position import distance, playfield_center
from .utils import power_mean


class DifficultySettings(namedtuple('DifficultySettings', (
        'mods',
        'clock_rate',
        'approach_rate',
        'ar_with_mods',
        'circle_size',
        'cs_with_mods',
        'drain_rate',
        'hp_with_mods',
        'overall_difficulty',
        'od_with_mods',
        'convert_to',
))):
    """The inputs of a difficulty calculation besides the beatmap.

    Parameters
    ----------
    mods : int, optional
        The mod mask.
    clock_rate : float, optional
        An explicit speed multiplier. When given this replaces the rate
        implied by ``mods`` entirely.
    approach_rate, circle_size : float, optional
        Overrides for the beatmap's settings.
    drain_rate, overall_difficulty : float, optional
        Overrides for the beatmap's settings.
    ar_with_mods, cs_with_mods, hp_with_mods, od_with_mods : bool, optional
        Do the matching overrides already include the effects of mods and
        clock rate? If not, they are adjusted like the beatmap's own values.
    convert_to : GameMode, optional
        Convert the beatmap to this mode before calculating.

    Raises
    ------
    ValueError
        Raised when ``clock_rate`` is not positive.
    """
    def __new__(cls,
                *,
                mods=0,
                clock_rate=None,
                approach_rate=None,
                ar_with_mods=False,
                circle_size=None,
                cs_with_mods=False,
                drain_rate=None,
                hp_with_mods=False,
                overall_difficulty=None,
                od_with_mods=False,
                convert_to=None):
        if clock_rate is not None and not clock_rate > 0:
            raise ValueError(
                f'clock_rate must be positive, got {clock_rate!r}',
            )

        return super().__new__(
            cls,
            int(mods),
            clock_rate,
            approach_rate,
            ar_with_mods,
            circle_size,
            cs_with_mods,
            drain_rate,
            hp_with_mods,
            overall_difficulty,
            od_with_mods,
            convert_to,
        )

    def prepare(self, beatmap):
        """Convert ``beatmap`` to the requested mode and check that it can be
        calculated.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap to prepare.

        Returns
        -------
        beatmap : Beatmap
            The beatmap to calculate.

        Raises
        ------
        ValueError
            Raised when there is no difficulty model for the beatmap's mode.
        """
        if self.convert_to is not None:
            beatmap = beatmap.convert(self.convert_to)

        if beatmap.mode not in DIFFICULTY_ATTRIBUTE_TYPES:
            raise ValueError(
                f'unsupported game mode: {GameMode(beatmap.mode).name}',
            )
        return beatmap

    def resolve(self, beatmap):
        """Apply the overrides, mods and clock rate to a beatmap's settings.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap whose settings to adjust.

        Returns
        -------
        resolved : ResolvedSettings
            The settings the difficulty is calculated with.
        """
        mods = self.mods
        clock_rate = self.clock_rate
        if clock_rate is None:
            clock_rate = mods_clock_rate(mods)

        def pick(override, with_mods, base, adjust):
            if override is None:
                return adjust(base)
            if with_mods:
                return override
            return adjust(override)

        return ResolvedSettings(
            mods=mods,
            clock_rate=clock_rate,
            approach_rate=pick(
                self.approach_rate,
                self.ar_with_mods,
                beatmap.approach_rate,
                lambda ar: adjust_ar(ar, mods, clock_rate),
            ),
            overall_difficulty=pick(
                self.overall_difficulty,
                self.od_with_mods,
                beatmap.overall_difficulty,
                lambda od: adjust_od(od, mods, clock_rate),
            ),
            circle_size=pick(
                self.circle_size,
                self.cs_with_mods,
                beatmap.circle_size,
                lambda cs: adjust_cs(cs, mods),
            ),
            hp_drain_rate=pick(
                self.drain_rate,
                self.hp_with_mods,
                beatmap.hp_drain_rate,
                lambda hp: adjust_hp(hp, mods),
            ),
        )


class ResolvedSettings(namedtuple('ResolvedSettings', (
        'mods',
        'clock_rate',
        'approach_rate',
        'overall_difficulty',
        'circle_size',
        'hp_drain_rate',
))):
    """Difficulty settings with every mod effect applied.
    """
    @property
    def preempt(self):
        return ar_to_ms(self.approach_rate)

    @property
    def hit_window_great(self):
        return od_to_ms_300(self.overall_difficulty)


class _DifficultyHitObject:
    """A hit object with the values the skills read precomputed.

    Parameters
    ----------
    hit_object : HitObject
        The hit object to wrap.
    scaling_factor : float
        The factor moving positions into the normalized playfield.
    clock_rate : float
        The speed multiplier.
    previous : _DifficultyHitObject, optional
        The previous difficulty hit object.
    last_previous : _DifficultyHitObject, optional
        The difficulty hit object before ``previous``.
    """
    def __init__(self,
                 hit_object,
                 scaling_factor,
                 clock_rate,
                 previous=None,
                 last_previous=None):
        self.hit_object = hit_object
        self.time = hit_object.time.total_seconds() * 1000
        self.is_slider = isinstance(hit_object, Slider)
        self.slider_length = hit_object.length if self.is_slider else 0
        # only objects that need to be clicked produce strain
        self.is_clickable = isinstance(hit_object, (Circle, Slider))

        if isinstance(hit_object, Spinner):
            position = playfield_center
        else:
            position = hit_object.position

        self.position = position
        self.normalized_position = position.scale(scaling_factor)

        if previous is None:
            self.delta_time = 0.0
            self.distance = 0.0
            self.jump_distance = 0.0
            self.angle = None
            return

        self.delta_time = (self.time - previous.time) / clock_rate
        self.distance = distance(
            self.normalized_position,
            previous.normalized_position,
        )
        # in osu! pixels
        self.jump_distance = distance(self.position, previous.position)
        self.angle = None
        if last_previous is not None:
            self.angle = self._angle(previous, last_previous)

    def _angle(self, previous, last_previous):
        """The angle at ``previous`` between the jump into it and the jump
        out of it, ``None`` when either jump has no length.
        """
        v1 = last_previous.normalized_position - previous.normalized_position
        v2 = self.normalized_position - previous.normalized_position
        if (v1.x == 0 and v1.y == 0) or (v2.x == 0 and v2.y == 0):
            return None

        dot = v1.x * v2.x + v1.y * v2.y
        det = v1.x * v2.y - v1.y * v2.x
        return abs(math.atan2(det, dot))


class Skill:
    """A difficulty dimension measured by a decaying strain.
    """
    name = None
    strain_decay_base = None
    skill_multiplier = None

    def strain_value_of(self, current):
        raise NotImplementedError('strain_value_of')

    def strains(self, objects):
        """The strain after each object.

        Parameters
        ----------
        objects : list[_DifficultyHitObject]
            The objects in time order.

        Returns
        -------
        strains : np.ndarray[float]
            The strain right after each object was hit. The first object has
            no strain.
        """
        out = np.zeros(len(objects))
        strain = 0.0
        for n, current in enumerate(objects[1:], 1):
            strain *= self.strain_decay_base ** (current.delta_time / 1000)
            strain += self.strain_value_of(current) * self.skill_multiplier
            out[n] = strain
        return out


class Aim(Skill):
    """How hard it is to move between objects.

    Parameters
    ----------
    with_sliders : bool, optional
        Give slider bodies a bonus for the extra movement they need.

    Notes
    -----
    Jumps are measured in circle radii: the normalized playfield puts
    ``normalized_radius`` pixels in a radius.
    """
    strain_decay_base = 0.3
    slider_skill_multiplier = 23.25
    no_slider_skill_multiplier = 23.55

    normalized_radius = 52
    angle_bonus_scale = 0.125
    slider_length_cap = 500
    slider_bonus = 0.25

    def __init__(self, with_sliders=True):
        self.with_sliders = with_sliders
        if with_sliders:
            self.name = 'aim'
            self.skill_multiplier = self.slider_skill_multiplier
        else:
            self.name = 'aim_no_sliders'
            self.skill_multiplier = self.no_slider_skill_multiplier

    def strain_value_of(self, current):
        if not current.is_clickable:
            return 0.0

        jump = current.distance / self.normalized_radius
        value = jump ** 0.99

        # sharp turns, measured at the previous object
        angle = current.angle
        if angle is not None and angle < math.pi / 2:
            value += math.cos(angle) ** 2 * jump * self.angle_bonus_scale

        if self.with_sliders and current.is_slider:
            value *= 1 + min(
                1,
                current.slider_length / self.slider_length_cap,
            ) * self.slider_bonus

        return value


class Speed(Skill):
    """How hard it is to tap objects quickly.

    Only objects closer than ``max_delta_time`` to the previous one add
    strain, growing with ``(max_delta_time / delta_time) ** 1.5``. Stacked
    objects are worth less than ones ``stack_distance`` pixels apart or more.
    """
    name = 'speed'
    strain_decay_base = 0.3
    skill_multiplier = 1400

    min_delta_time = 25
    max_delta_time = 150
    stack_distance = 50
    stack_weight = 0.8

    def strain_value_of(self, current):
        if not current.is_clickable:
            return 0.0

        delta_time = max(self.min_delta_time, current.delta_time)
        if delta_time >= self.max_delta_time:
            return 0.0

        value = (self.max_delta_time / delta_time) ** 1.5
        spread = min(1, current.jump_distance / self.stack_distance)
        return value * (
            self.stack_weight +
            (1 - self.stack_weight) * spread
        )


class _StrainSeries:
    """The strain peaks of one skill, recorded so that the difficulty of any
    prefix of the objects can be read without walking them again.

    Parameters
    ----------
    skill : Skill
        The skill to measure.
    objects : list[_DifficultyHitObject]
        The objects in time order.
    section_length : float
        The length of a strain section in beatmap milliseconds.
    clock_rate : float
        The speed multiplier.
    """
    decay_weight = 0.9

    def __init__(self, skill, objects, section_length, clock_rate):
        strains = skill.strains(objects)

        peaks = []
        # the number of peaks closed before each object
        self._closed = closed = np.zeros(len(objects), dtype=np.int64)
        # the highest strain of the open section after each object
        self._open_peak = open_peak = np.zeros(len(objects))

        interval_end = 0.0
        if objects:
            interval_end = (
                math.ceil(objects[0].time / section_length) * section_length
            )

        max_strain = 0.0
        previous = None
        for n, current in enumerate(objects):
            while current.time > interval_end:
                peaks.append(max_strain)

                if previous is None:
                    max_strain = 0.0
                else:
                    # the new section starts where the decaying strain is
                    elapsed = (
                        (interval_end - objects[previous].time) / clock_rate
                    )
                    max_strain = (
                        strains[previous] *
                        skill.strain_decay_base ** (elapsed / 1000)
                    )

                interval_end += section_length

            max_strain = np.maximum(max_strain, strains[n])
            previous = n

            closed[n] = len(peaks)
            open_peak[n] = max_strain

        self._peaks = np.array(peaks, dtype=np.float64)

    def difficulty_value(self, length):
        """The weighted sum of section peaks over the first ``length``
        objects.
        """
        if length <= 0:
            return 0.0

        ix = length - 1
        peaks = np.append(self._peaks[:self._closed[ix]], self._open_peak[ix])
        peaks = np.sort(peaks)[::-1]
        weights = self.decay_weight ** np.arange(len(peaks))
        return float(np.dot(peaks, weights))


class StrainModel:
    """The strain of every skill over a beatmap's objects, ready to be read
    at any prefix of the object sequence.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap to measure.
    settings : ResolvedSettings
        The adjusted settings to measure with.
    """
    section_length = 400
    circle_size_buffer_threshold = 30

    star_scaling_factor = 0.0675
    star_mean_exponent = 1.1
    star_cap = 12
    touch_device_aim_multiplier = 0.8
    flashlight_multiplier = 0.8
    star_multipliers = (
        (Mod.no_fail, 0.9),
        (Mod.easy, 0.5),
        (Mod.hard_rock, 1.1),
    )

    def __init__(self, beatmap, settings):
        self.beatmap = beatmap
        self.settings = settings

        clock_rate = settings.clock_rate
        radius = circle_radius(settings.circle_size)
        scaling_factor = 52 / radius
        if radius < self.circle_size_buffer_threshold:
            scaling_factor *= 1 + min(
                self.circle_size_buffer_threshold - radius,
                5,
            ) / 50

        objects = []
        previous = last_previous = None
        for hit_object in beatmap.hit_objects:
            current = _DifficultyHitObject(
                hit_object,
                scaling_factor,
                clock_rate,
                previous,
                last_previous,
            )
            objects.append(current)
            last_previous = previous
            previous = current
        self._objects = objects

        section_length = self.section_length * clock_rate
        self._series = {
            skill.name: _StrainSeries(
                skill,
                objects,
                section_length,
                clock_rate,
            )
            for skill in (Aim(with_sliders=True), Aim(with_sliders=False),
                          Speed())
        }

        hit_objects = beatmap.hit_objects
        self._combo = np.cumsum([ob.combo for ob in hit_objects], dtype=int)
        self._circles = np.cumsum(
            [isinstance(ob, Circle) for ob in hit_objects],
            dtype=int,
        )
        self._sliders = np.cumsum(
            [isinstance(ob, Slider) for ob in hit_objects],
            dtype=int,
        )
        self._spinners = np.cumsum(
            [isinstance(ob, Spinner) for ob in hit_objects],
            dtype=int,
        )
        self._hold_notes = np.cumsum(
            [isinstance(ob, HoldNote) for ob in hit_objects],
            dtype=int,
        )

    def __len__(self):
        return len(self._objects)

    def _count(self, cumulative, length):
        if length <= 0:
            return 0
        return int(cumulative[length - 1])

    def _fallback_stars(self, length):
        settings = self.settings
        if length > 0:
            span = (
                self._objects[length - 1].time -
                self._objects[0].time
            ) / settings.clock_rate / 1000
        else:
            span = 60.0

        density = length / max(1.0, span)
        base = (
            settings.circle_size +
            settings.approach_rate +
            settings.overall_difficulty
        ) / 3 * 0.8
        stars = min(6.0, base + min(1.0, math.sqrt(density / 4)) * 1.4)
        if not math.isfinite(stars):
            return 0.0
        return stars

    def attributes(self, length=None):
        """The difficulty attributes of the first ``length`` objects.

        Parameters
        ----------
        length : int, optional
            The number of objects to include. Defaults to all of them.

        Returns
        -------
        attributes : OsuDifficultyAttributes
            The difficulty attributes.
        """
        n_objects = len(self._objects)
        if length is None or length > n_objects:
            length = n_objects
        length = max(0, length)

        settings = self.settings
        mods = settings.mods

        aim_value = self._series['aim'].difficulty_value(length)
        aim_no_sliders_value = self._series['aim_no_sliders'].difficulty_value(
            length,
        )
        speed_value = self._series['speed'].difficulty_value(length)

        if aim_value > 0:
            # the pass without sliders uses a slightly larger multiplier
            slider_factor = min(1.0, aim_no_sliders_value / aim_value)
        else:
            slider_factor = 1.0

        if mods & Mod.touch_device:
            aim_value *= self.touch_device_aim_multiplier

        aim = math.sqrt(aim_value) * self.star_scaling_factor
        speed = math.sqrt(speed_value) * self.star_scaling_factor
        stars = power_mean((aim, speed), self.star_mean_exponent)
        for mod, multiplier in self.star_multipliers:
            if mods & mod:
                stars *= multiplier
        stars = float(np.minimum(stars, self.star_cap))

        if not all(map(math.isfinite, (stars, aim, speed, slider_factor))):
            logging.warning(
                f'non-finite difficulty for {self.beatmap!r} at {length}'
                ' objects, falling back to a density estimate',
            )
            stars = self._fallback_stars(length)
            aim = stars * 0.6
            speed = stars * 0.4
            slider_factor = 1.0

        if mods & Mod.flashlight:
            flashlight = aim * self.flashlight_multiplier
        else:
            flashlight = 0.0

        return OsuDifficultyAttributes(
            mode=GameMode.standard,
            mods=mods,
            stars=stars,
            aim_strain=aim,
            speed_strain=speed,
            flashlight_strain=flashlight,
            slider_factor=slider_factor,
            approach_rate=settings.approach_rate,
            overall_difficulty=settings.overall_difficulty,
            circle_size=settings.circle_size,
            hp_drain_rate=settings.hp_drain_rate,
            preempt=settings.preempt,
            hit_window_great=settings.hit_window_great,
            clock_rate=settings.clock_rate,
            max_combo=self._count(self._combo, length),
            n_circles=self._count(self._circles, length),
            n_sliders=self._count(self._sliders, length),
            n_spinners=self._count(self._spinners, length),
            n_hold_notes=self._count(self._hold_notes, length),
        )


def strain_model(beatmap, settings=None):
    """Build the strain model for a beatmap.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap to measure.
    settings : DifficultySettings, optional
        The mods and overrides to apply.

    Returns
    -------
    model : StrainModel
        The model, which can produce attributes for any prefix of the map.
    """
    if settings is None:
        settings = DifficultySettings()

    beatmap = settings.prepare(beatmap)
    return StrainModel(beatmap, settings.resolve(beatmap))


def calculate_difficulty(beatmap, settings=None):
    """Calculate the difficulty attributes of a beatmap.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap to calculate.
    settings : DifficultySettings, optional
        The mods and overrides to apply.

    Returns
    -------
    attributes : OsuDifficultyAttributes
        The difficulty attributes.

    Raises
    ------
    ValueError
        Raised when there is no difficulty model for the beatmap's mode.

    Examples
    --------
    >>> attrs = calculate_difficulty(
    ...     beatmap,
    ...     DifficultySettings(mods=Mod.parse('HDDT')),
    ... )
    >>> attrs.stars
    """
    return strain_model(beatmap, settings).attributes()
