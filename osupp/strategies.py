from datetime import timedelta

from hypothesis.strategies import (
    composite,
    floats as _floats,
    integers,
    lists,
    one_of,
    sampled_from,
)

from osupp import Beatmap, Circle, GameMode, Position, Slider, Spinner
from osupp.mod import Mod


def floats(*args, **kwargs):
    return _floats(*args, allow_nan=False, allow_infinity=False, **kwargs)


@composite
def positions(draw):
    return Position(
        x=draw(integers(0, Position.x_max)),
        y=draw(integers(0, Position.y_max)),
    )


@composite
def circles(draw, time):
    return Circle(position=draw(positions()), time=time)


@composite
def sliders(draw, time):
    repeat = draw(integers(1, 3))
    return Slider(
        position=draw(positions()),
        time=time,
        end_time=time + timedelta(milliseconds=draw(integers(50, 1000))),
        length=draw(floats(10, 600)),
        repeat=repeat,
        ticks=draw(integers(repeat + 1, repeat + 8)),
    )


@composite
def spinners(draw, time):
    return Spinner(
        position=Position(256, 192),
        time=time,
        end_time=time + timedelta(milliseconds=draw(integers(500, 3000))),
    )


@composite
def hit_objects(draw, *, min_size=0, max_size=60):
    """Hit objects in time order with plausible spacing.
    """
    gaps = draw(lists(
        integers(30, 1500),
        min_size=min_size,
        max_size=max_size,
    ))
    kinds = [circles, circles, circles, sliders, spinners]

    time = timedelta(milliseconds=draw(integers(0, 5000)))
    out = []
    for gap in gaps:
        time += timedelta(milliseconds=gap)
        kind = draw(sampled_from(kinds))
        out.append(draw(kind(time)))
    return out


@composite
def beatmaps(draw, *, min_objects=0, max_objects=60):
    return Beatmap(
        mode=GameMode.standard,
        hp_drain_rate=draw(floats(0, 10)),
        circle_size=draw(floats(2, 7)),
        overall_difficulty=draw(floats(0, 10)),
        approach_rate=draw(floats(0, 10)),
        hit_objects=draw(
            hit_objects(min_size=min_objects, max_size=max_objects),
        ),
        title='generated',
        artist='hypothesis',
        version='draw',
    )


def mods():
    return one_of(
        sampled_from([0]),
        sampled_from([
            Mod.hidden,
            Mod.hard_rock,
            Mod.double_time,
            Mod.half_time,
            Mod.easy,
            Mod.flashlight,
            Mod.no_fail,
            Mod.hidden | Mod.hard_rock,
            Mod.hidden | Mod.double_time,
            Mod.hidden | Mod.hard_rock | Mod.double_time | Mod.flashlight,
            Mod.easy | Mod.half_time,
            Mod.touch_device,
            Mod.relax,
            Mod.spun_out,
        ]),
    )
