from datetime import timedelta
from functools import partial
import re

import numpy as np

from .game_mode import GameMode
from .position import Position
from .utils import lazyval, no_default


def _get(cs, ix, default=no_default):
    try:
        return cs[ix]
    except IndexError:
        if default is no_default:
            raise
        return default


class TimingPoint:
    """A change of tempo or slider velocity.

    Parameters
    ----------
    offset : timedelta
        The time the change starts at.
    ms_per_beat : float
        The beat length in milliseconds. Inherited points store a negative
        slider velocity percentage here instead.
    parent : TimingPoint or None
        The uninherited point whose beat length an inherited point keeps,
        ``None`` for uninherited points.
    """
    def __init__(self, offset, ms_per_beat, parent=None):
        self.offset = offset
        self.ms_per_beat = ms_per_beat
        self.parent = parent

    @property
    def inherited(self):
        return self.parent is not None

    @lazyval
    def bpm(self):
        """The tempo in beats per minute, ``None`` for inherited points.
        """
        ms_per_beat = self.ms_per_beat
        if ms_per_beat < 0:
            return None
        return round(60000 / ms_per_beat)

    def __repr__(self):
        if self.parent is None:
            inherited = ''
        else:
            inherited = 'inherited '
        return (
            f'<{type(self).__qualname__}:'
            f' {inherited}{self.offset.total_seconds() * 1000:g}ms>'
        )

    @classmethod
    def parse(cls, data, parent):
        """Read a timing point from a ``[TimingPoints]`` line.

        Parameters
        ----------
        data : str
            The line.
        parent : TimingPoint
            The latest uninherited point before this one.

        Returns
        -------
        timing_point : TimingPoint
            The timing point.

        Raises
        ------
        ValueError
            Raised when the line is malformed.
        """
        try:
            offset, ms_per_beat, *rest = data.split(',')
        except ValueError:
            raise ValueError(
                f'failed to parse {cls.__qualname__} from {data!r}',
            )

        try:
            offset = timedelta(milliseconds=float(offset))
        except ValueError:
            raise ValueError(f'offset should be a float, got {offset!r}')

        try:
            ms_per_beat = float(ms_per_beat)
        except ValueError:
            raise ValueError(
                f'ms_per_beat should be a float, got {ms_per_beat!r}',
            )

        uninherited = _get(rest, 4, '1')
        try:
            inherited = not bool(int(uninherited))
        except ValueError:
            raise ValueError(
                f'uninherited should be a bool, got {uninherited!r}',
            )

        return cls(
            offset=offset,
            ms_per_beat=ms_per_beat,
            parent=parent if inherited and parent is not None else None,
        )


class HitObject:
    """The fields every kind of hit object shares.

    Parameters
    ----------
    position : Position
        The playfield position in osu! pixels.
    time : timedelta
        The time the object must be hit at.
    hitsound : int, optional
        The hitsound bits.
    """
    #: The combo awarded for completing this object.
    combo = 1

    def __init__(self, position, time, hitsound=0):
        self.position = position
        self.time = time
        self.hitsound = hitsound

    @property
    def end_time(self):
        return self.time

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self.position},'
            f' {self.time.total_seconds() * 1000:g}ms>'
        )

    @classmethod
    def parse(cls, data, timing_points, slider_multiplier, slider_tick_rate):
        """Read a hit object from a ``[HitObjects]`` line.

        Parameters
        ----------
        data : str
            The line.
        timing_points : list[TimingPoint]
            The map's timing points in time order.
        slider_multiplier : float
            The base slider velocity in hundreds of osu! pixels per beat.
        slider_tick_rate : float
            The number of slider ticks per beat.

        Returns
        -------
        hit_object : HitObject
            A ``Circle``, ``Slider``, ``Spinner`` or ``HoldNote``, picked by
            the type bits.

        Raises
        ------
        ValueError
            Raised when the line is malformed or has an unknown type.
        """
        try:
            x, y, time, type_, hitsound, *rest = data.split(',')
        except ValueError:
            raise ValueError(f'not enough elements in line, got {data!r}')

        try:
            position = Position(float(x), float(y))
        except ValueError:
            raise ValueError(f'x and y should be numbers, got {x!r}, {y!r}')

        try:
            time = timedelta(milliseconds=float(time))
        except ValueError:
            raise ValueError(f'time should be a number, got {time!r}')

        try:
            type_ = int(type_)
        except ValueError:
            raise ValueError(f'type should be an int, got {type_!r}')

        try:
            hitsound = int(hitsound)
        except ValueError:
            raise ValueError(f'hitsound should be an int, got {hitsound!r}')

        if type_ & Circle.type_code:
            parse = Circle._parse
        elif type_ & Slider.type_code:
            parse = partial(
                Slider._parse,
                timing_points=timing_points,
                slider_multiplier=slider_multiplier,
                slider_tick_rate=slider_tick_rate,
            )
        elif type_ & Spinner.type_code:
            parse = Spinner._parse
        elif type_ & HoldNote.type_code:
            parse = HoldNote._parse
        else:
            raise ValueError(f'unknown type code {type_!r}')

        return parse(position, time, hitsound, rest)


def _parse_end_time(raw):
    # hold notes pack the end time with the hit sample: ``end:0:0:0:0:``
    end_time = raw.split(':', 1)[0]
    try:
        return timedelta(milliseconds=float(end_time))
    except ValueError:
        raise ValueError(f'end_time should be a number, got {end_time!r}')


class Circle(HitObject):
    """A circle, hit once.

    Parameters
    ----------
    position : Position
        The playfield position.
    time : timedelta
        The hit time.
    """
    type_code = 1

    @classmethod
    def _parse(cls, position, time, hitsound, rest):
        return cls(position, time, hitsound)


class Spinner(HitObject):
    """A spinner. Difficulty calculation places it in the playfield centre.

    Parameters
    ----------
    position : Position
        The position written in the file.
    time : timedelta
        The time spinning starts.
    end_time : timedelta
        The time spinning ends.
    """
    type_code = 8

    def __init__(self, position, time, end_time, hitsound=0):
        super().__init__(position, time, hitsound)
        self._end_time = end_time

    @property
    def end_time(self):
        return self._end_time

    @classmethod
    def _parse(cls, position, time, hitsound, rest):
        try:
            end_time, *rest = rest
        except ValueError:
            raise ValueError('missing end_time')

        return cls(position, time, _parse_end_time(end_time), hitsound)


class Slider(HitObject):
    """A slider hit element.

    Parameters
    ----------
    position : Position
        The position of the head.
    time : timedelta
        The time the head must be hit.
    end_time : timedelta
        The time the last pass over the body ends.
    length : float
        The length of the slider body in osu! pixels.
    repeat : int, optional
        The number of times the slider body is travelled.
    ticks : int, optional
        The number of combo awarding elements on the slider: the head, the
        ticks, the repeats and the tail. Defaults to ``repeat + 1``.
    """
    type_code = 2

    def __init__(self,
                 position,
                 time,
                 end_time,
                 length,
                 repeat=1,
                 ticks=None,
                 hitsound=0):
        super().__init__(position, time, hitsound)
        self._end_time = end_time
        self.length = length
        self.repeat = repeat
        self.ticks = repeat + 1 if ticks is None else ticks

    @property
    def end_time(self):
        return self._end_time

    @property
    def combo(self):
        return self.ticks

    @classmethod
    def _parse(cls,
               position,
               time,
               hitsound,
               rest,
               timing_points,
               slider_multiplier,
               slider_tick_rate):
        try:
            _, repeat, pixel_length, *rest = rest
        except ValueError:
            raise ValueError(f'missing required slider data in {rest!r}')

        try:
            repeat = int(repeat)
        except ValueError:
            raise ValueError(f'repeat should be an int, got {repeat!r}')

        try:
            pixel_length = float(pixel_length)
        except ValueError:
            raise ValueError(
                f'pixel_length should be a float, got {pixel_length!r}',
            )

        if not timing_points:
            raise ValueError('sliders require at least one timing point')

        for tp in reversed(timing_points):
            if tp.offset <= time:
                break
        else:
            tp = timing_points[0]

        if tp.parent is not None:
            velocity_multiplier = -100 / tp.ms_per_beat
            ms_per_beat = tp.parent.ms_per_beat
        else:
            velocity_multiplier = 1
            ms_per_beat = tp.ms_per_beat

        pixels_per_beat = slider_multiplier * 100 * velocity_multiplier
        num_beats = (pixel_length * repeat) / pixels_per_beat
        duration = timedelta(milliseconds=int(num_beats * ms_per_beat))

        ticks = int(
            (
                (np.ceil((num_beats - 0.1) / repeat * slider_tick_rate) - 1)
            ) *
            repeat +
            repeat +
            1
        )

        return cls(
            position,
            time,
            time + duration,
            pixel_length,
            repeat,
            max(ticks, repeat + 1),
            hitsound,
        )


class HoldNote(HitObject):
    """An osu!mania hold note. Maps converted from mania keep them.

    Parameters
    ----------
    position : Position
        The position written in the file; ``x`` picks the column.
    time : timedelta
        The time the key is pressed.
    end_time : timedelta
        The time the key is released.
    """
    type_code = 128

    def __init__(self, position, time, end_time, hitsound=0):
        super().__init__(position, time, hitsound)
        self._end_time = end_time

    @property
    def end_time(self):
        return self._end_time

    @classmethod
    def _parse(cls, position, time, hitsound, rest):
        try:
            end_time, *rest = rest
        except ValueError:
            raise ValueError('missing end_time')

        return cls(position, time, _parse_end_time(end_time), hitsound)


def _get_as_str(groups, section, field, default=no_default):
    """Read a raw value from one section of a grouped ``.osu`` file.

    Parameters
    ----------
    groups : dict[str, dict[str, str]]
        The ``key: value`` pairs of each section.
    section : str
        The section name.
    field : str
        The key.
    default : any, optional
        Returned when the section or the key is missing.

    Returns
    -------
    value : str
        The raw value, or ``default``.

    Raises
    ------
    ValueError
        Raised when the value is missing and there is no default.
    """
    try:
        mapping = groups[section]
    except KeyError:
        if default is no_default:
            raise ValueError(f'missing section {section!r}')
        return default

    try:
        return mapping[field]
    except KeyError:
        if default is no_default:
            raise ValueError(f'missing field {field!r} in section {section!r}')
        return default


def _get_as_int(groups, section, field, default=no_default):
    v = _get_as_str(groups, section, field, default)

    if v is default:
        return v

    try:
        return int(v)
    except ValueError:
        raise ValueError(
            f'field {field!r} in section {section!r} should be an int,'
            f' got {v!r}',
        )


def _get_as_float(groups, section, field, default=no_default):
    v = _get_as_str(groups, section, field, default)

    if v is default:
        return v

    try:
        return float(v)
    except ValueError:
        raise ValueError(
            f'field {field!r} in section {section!r} should be a float,'
            f' got {v!r}',
        )


class Beatmap:
    """A beatmap, reduced to what difficulty and performance calculation
    needs.

    Parameters
    ----------
    mode : GameMode
        The game mode.
    hp_drain_rate, circle_size, overall_difficulty : float
        The base ``HP``, ``CS`` and ``OD`` settings, before mods.
    approach_rate : float or None, optional
        The base ``AR``. Maps written before AR existed use the overall
        difficulty, which is the default.
    slider_multiplier : float, optional
        The base slider velocity in hundreds of osu! pixels per beat.
    slider_tick_rate : float, optional
        The number of slider ticks per beat.
    hit_objects : list[HitObject]
        The hit objects in time order.
    timing_points : list[TimingPoint], optional
        The timing points in time order.
    title, artist, creator, version : str, optional
        Metadata.
    beatmap_id, beatmap_set_id : int or None, optional
        The online ids, when known.
    format_version : int, optional
        The ``osu file format`` version the map was read from.
    original_mode : GameMode or None, optional
        The mode the map was authored for, set on converted maps.
    """
    _version_regex = re.compile(r'^osu file format v(\d+)$')

    def __init__(self,
                 *,
                 mode,
                 hp_drain_rate,
                 circle_size,
                 overall_difficulty,
                 hit_objects,
                 approach_rate=None,
                 slider_multiplier=1.4,
                 slider_tick_rate=1.0,
                 timing_points=(),
                 title='',
                 artist='',
                 creator='',
                 version='',
                 beatmap_id=None,
                 beatmap_set_id=None,
                 format_version=14,
                 original_mode=None):
        self.mode = GameMode(mode)
        self.hp_drain_rate = hp_drain_rate
        self.circle_size = circle_size
        self.overall_difficulty = overall_difficulty
        if approach_rate is None:
            approach_rate = overall_difficulty
        self.approach_rate = approach_rate
        self.slider_multiplier = slider_multiplier
        self.slider_tick_rate = slider_tick_rate
        self.hit_objects = list(hit_objects)
        self.timing_points = list(timing_points)
        self.title = title
        self.artist = artist
        self.creator = creator
        self.version = version
        self.beatmap_id = beatmap_id
        self.beatmap_set_id = beatmap_set_id
        self.format_version = format_version
        self.original_mode = original_mode

    @property
    def display_name(self):
        """The name of the map as it appears in game.
        """
        return f'{self.artist} - {self.title} [{self.version}]'

    @property
    def is_convert(self):
        """Was this map converted from a different game mode?
        """
        return self.original_mode is not None

    @property
    def n_objects(self):
        return len(self.hit_objects)

    def _count(self, type_):
        return sum(isinstance(ob, type_) for ob in self.hit_objects)

    @lazyval
    def n_circles(self):
        return self._count(Circle)

    @lazyval
    def n_sliders(self):
        return self._count(Slider)

    @lazyval
    def n_spinners(self):
        return self._count(Spinner)

    @lazyval
    def n_hold_notes(self):
        return self._count(HoldNote)

    @lazyval
    def max_combo(self):
        """The highest combo that can be achieved on this beatmap.
        """
        return sum(hit_object.combo for hit_object in self.hit_objects)

    def copy(self, **changes):
        """Create a new beatmap with some fields replaced.

        Parameters
        ----------
        **changes
            Constructor arguments to override.

        Returns
        -------
        beatmap : Beatmap
            The new beatmap. Hit objects are shared, they are never mutated.
        """
        kwargs = {
            'mode': self.mode,
            'hp_drain_rate': self.hp_drain_rate,
            'circle_size': self.circle_size,
            'overall_difficulty': self.overall_difficulty,
            'approach_rate': self.approach_rate,
            'slider_multiplier': self.slider_multiplier,
            'slider_tick_rate': self.slider_tick_rate,
            'hit_objects': self.hit_objects,
            'timing_points': self.timing_points,
            'title': self.title,
            'artist': self.artist,
            'creator': self.creator,
            'version': self.version,
            'beatmap_id': self.beatmap_id,
            'beatmap_set_id': self.beatmap_set_id,
            'format_version': self.format_version,
            'original_mode': self.original_mode,
        }
        kwargs.update(changes)
        return type(self)(**kwargs)

    def convert(self, mode):
        """Convert this beatmap to another game mode.

        Parameters
        ----------
        mode : GameMode
            The mode to convert to.

        Returns
        -------
        converted : Beatmap
            A new beatmap tagged with ``mode``. When ``mode`` differs from
            this map's mode the result remembers the mode it came from in
            ``original_mode``.

        Notes
        -----
        Hit objects are carried over unchanged; only the standard mode has a
        difficulty model, so no per mode object transformation is done.
        """
        mode = GameMode(mode)
        if mode == self.mode:
            return self.copy()

        return self.copy(
            mode=mode,
            original_mode=(
                self.original_mode
                if self.original_mode is not None else
                self.mode
            ),
        )

    def __repr__(self):
        return f'<{type(self).__qualname__}: {self.display_name}>'

    @classmethod
    def from_path(cls, path):
        """Read a ``.osu`` file.

        Parameters
        ----------
        path : str or pathlib.Path
            The file to read.

        Returns
        -------
        beatmap : Beatmap
            The beatmap.

        Raises
        ------
        ValueError
            Raised when the file is not a valid ``.osu`` file.
        """
        with open(path, encoding='utf-8-sig') as file:
            return cls.from_file(file)

    @classmethod
    def from_file(cls, file):
        """Read a beatmap from an open text file.

        See Also
        --------
        Beatmap.from_path
        """
        return cls.parse(file.read())

    _mapping_groups = frozenset({
        'General',
        'Editor',
        'Metadata',
        'Difficulty',
    })

    @classmethod
    def _find_groups(cls, lines):
        """Group the lines of a ``.osu`` file by ``[Section]`` header.

        Parameters
        ----------
        lines : iterator[str]
            The lines after the format header.

        Returns
        -------
        groups : dict[str, list[str] or dict[str, str]]
            The lines of each section. ``Key: Value`` sections such as
            ``[Difficulty]`` are read into a dict instead. Blank lines and
            ``//`` comments are dropped.
        """
        groups = {}

        current_group = None
        group_buffer = []

        def commit_group():
            nonlocal group_buffer

            if current_group is None:
                return

            if current_group in cls._mapping_groups:
                # build a dict from the ``Key: Value`` line format.
                mapping = {}
                for line in group_buffer:
                    key, _, value = line.partition(':')
                    mapping[key.strip()] = value.strip()
                group_buffer = mapping

            groups[current_group] = group_buffer
            group_buffer = []

        for line in lines:
            line = line.strip()
            if not line or line.startswith('//'):
                continue

            if line[0] == '[' and line[-1] == ']':
                commit_group()
                current_group = line[1:-1]
            else:
                group_buffer.append(line)

        commit_group()
        return groups

    @classmethod
    def parse(cls, data):
        """Read a beatmap from the text of a ``.osu`` file.

        Parameters
        ----------
        data : str
            The file contents.

        Returns
        -------
        beatmap : Beatmap
            The beatmap, with hit objects sorted by time.

        Raises
        ------
        ValueError
            Raised when the format header is missing, the mode is unknown or
            a timing point or hit object is malformed.

        Notes
        -----
        Missing difficulty settings default to 5, the slider multiplier to
        1.4 and the tick rate to 1.
        """
        data = data.lstrip()
        lines = iter(data.splitlines())
        line = next(lines, '')
        match = cls._version_regex.match(line.strip())
        if match is None:
            raise ValueError(f'missing osu file format specifier in: {line!r}')

        format_version = int(match.group(1))
        groups = cls._find_groups(lines)

        od = _get_as_float(groups, 'Difficulty', 'OverallDifficulty', 5.0)

        timing_points = []
        # the first timing point cannot be inherited
        parent = None
        for raw_timing_point in groups.get('TimingPoints', []):
            timing_point = TimingPoint.parse(raw_timing_point, parent)
            if timing_point.parent is None:
                parent = timing_point
            timing_points.append(timing_point)

        slider_multiplier = _get_as_float(
            groups,
            'Difficulty',
            'SliderMultiplier',
            default=1.4,
        )
        slider_tick_rate = _get_as_float(
            groups,
            'Difficulty',
            'SliderTickRate',
            default=1.0,
        )

        hit_objects = []
        for raw_hit_object in groups.get('HitObjects', []):
            try:
                hit_object = HitObject.parse(
                    raw_hit_object,
                    timing_points=timing_points,
                    slider_multiplier=slider_multiplier,
                    slider_tick_rate=slider_tick_rate,
                )
            except ValueError as e:
                raise ValueError(
                    f'failed to parse hit object {raw_hit_object!r}: {e}',
                ) from e
            hit_objects.append(hit_object)

        # sort is stable, objects sharing a time keep their file order
        hit_objects.sort(key=lambda hit_object: hit_object.time)

        try:
            mode = GameMode(_get_as_int(groups, 'General', 'Mode', 0))
        except ValueError as e:
            raise ValueError(f'unknown game mode: {e}') from e

        approach_rate = _get_as_float(
            groups,
            'Difficulty',
            'ApproachRate',
            # maps from before AR existed use OD
            default=od,
        )

        return cls(
            format_version=format_version,
            mode=mode,
            title=_get_as_str(groups, 'Metadata', 'Title', ''),
            artist=_get_as_str(groups, 'Metadata', 'Artist', ''),
            creator=_get_as_str(groups, 'Metadata', 'Creator', ''),
            version=_get_as_str(groups, 'Metadata', 'Version', ''),
            beatmap_id=_get_as_int(groups, 'Metadata', 'BeatmapID', None),
            beatmap_set_id=_get_as_int(
                groups,
                'Metadata',
                'BeatmapSetID',
                None,
            ),
            hp_drain_rate=_get_as_float(
                groups,
                'Difficulty',
                'HPDrainRate',
                5.0,
            ),
            circle_size=_get_as_float(groups, 'Difficulty', 'CircleSize', 5.0),
            overall_difficulty=od,
            # a zero AR is treated as unset
            approach_rate=approach_rate or None,
            slider_multiplier=slider_multiplier,
            slider_tick_rate=slider_tick_rate,
            timing_points=timing_points,
            hit_objects=hit_objects,
        )
