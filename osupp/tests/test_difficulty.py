from datetime import timedelta
import math

from hypothesis import given, settings
import pytest

import osupp.example_data.beatmaps
from osupp import (
    Beatmap,
    Circle,
    DifficultySettings,
    GameMode,
    Mod,
    Position,
    ScoreParams,
    calculate_difficulty,
    calculate_performance,
)
from osupp.difficulty import Aim, Speed, strain_model
from osupp.mod import circle_radius
from osupp.strategies import beatmaps


@pytest.fixture
def beatmap():
    return osupp.example_data.beatmaps.strain_study()


def _circles_map(positions, interval=500, **kwargs):
    kwargs.setdefault('circle_size', 4)
    kwargs.setdefault('overall_difficulty', 8)
    kwargs.setdefault('approach_rate', 9)
    return Beatmap(
        mode=GameMode.standard,
        hp_drain_rate=5,
        hit_objects=[
            Circle(position, timedelta(milliseconds=1000 + interval * n))
            for n, position in enumerate(positions)
        ],
        **kwargs
    )


@pytest.fixture
def jumps():
    # too slow for speed strain and far below the star cap
    return _circles_map(
        [Position(100, 100), Position(300, 100)] * 10,
        interval=200,
    )


def test_deterministic(beatmap):
    assert calculate_difficulty(beatmap) == calculate_difficulty(beatmap)


def test_attributes(beatmap):
    attributes = calculate_difficulty(beatmap)

    assert attributes.mode == GameMode.standard
    assert attributes.mods == 0
    assert attributes.stars > 0
    assert attributes.aim_strain > 0
    assert attributes.speed_strain > 0
    assert attributes.flashlight_strain == 0
    assert attributes.clock_rate == 1

    assert attributes.approach_rate == 9
    assert attributes.overall_difficulty == 8
    assert attributes.preempt == 600
    assert attributes.hit_window_great == 32

    assert attributes.max_combo == beatmap.max_combo
    assert attributes.n_circles == 22
    assert attributes.n_sliders == 4
    assert attributes.n_spinners == 1
    assert attributes.n_hold_notes == 0
    assert attributes.n_objects == beatmap.n_objects


def test_slider_factor(beatmap):
    attributes = calculate_difficulty(beatmap)
    assert 0 < attributes.slider_factor <= 1

    no_sliders = _circles_map([Position(0, 0), Position(300, 200)] * 5)
    assert calculate_difficulty(no_sliders).slider_factor == 1


def test_empty_beatmap():
    attributes = calculate_difficulty(_circles_map([]))
    assert attributes.stars == 0
    assert attributes.aim_strain == 0
    assert attributes.speed_strain == 0
    assert attributes.slider_factor == 1
    assert attributes.max_combo == 0
    assert attributes.n_objects == 0


def test_single_object_has_no_strain():
    attributes = calculate_difficulty(_circles_map([Position(100, 100)]))
    assert attributes.stars == 0
    assert attributes.max_combo == 1


@pytest.mark.parametrize('clock_rate', [0, -1.5, float('nan')])
def test_invalid_clock_rate(clock_rate):
    with pytest.raises(ValueError, match='clock_rate'):
        DifficultySettings(clock_rate=clock_rate)


def test_unsupported_mode(beatmap):
    taiko = beatmap.convert(GameMode.taiko)
    with pytest.raises(ValueError, match='unsupported game mode'):
        calculate_difficulty(taiko)

    back = calculate_difficulty(
        taiko,
        DifficultySettings(convert_to=GameMode.standard),
    )
    assert back.stars == calculate_difficulty(beatmap).stars


def test_star_multipliers(jumps):
    nomod = calculate_difficulty(jumps)

    no_fail = calculate_difficulty(
        jumps,
        DifficultySettings(mods=Mod.no_fail),
    )
    assert no_fail.stars == pytest.approx(nomod.stars * 0.9)
    assert no_fail.aim_strain == nomod.aim_strain

    touch_device = calculate_difficulty(
        jumps,
        DifficultySettings(mods=Mod.touch_device),
    )
    assert touch_device.aim_strain == pytest.approx(
        nomod.aim_strain * math.sqrt(0.8),
    )
    assert touch_device.speed_strain == nomod.speed_strain
    assert touch_device.stars < nomod.stars


def test_flashlight(jumps):
    attributes = calculate_difficulty(
        jumps,
        DifficultySettings(mods=Mod.flashlight),
    )
    assert attributes.flashlight_strain == pytest.approx(
        attributes.aim_strain * 0.8,
    )


def test_clock_rate(jumps):
    nomod = calculate_difficulty(jumps)
    double_time = calculate_difficulty(
        jumps,
        DifficultySettings(mods=Mod.double_time),
    )
    half_time = calculate_difficulty(
        jumps,
        DifficultySettings(mods=Mod.half_time),
    )

    assert double_time.clock_rate == 1.5
    assert double_time.approach_rate == pytest.approx(31 / 3)
    assert double_time.preempt == pytest.approx(400)
    assert half_time.clock_rate == 0.75

    assert half_time.stars < nomod.stars < double_time.stars


def test_explicit_clock_rate_wins_over_mods(jumps):
    nomod = calculate_difficulty(jumps)
    attributes = calculate_difficulty(
        jumps,
        DifficultySettings(mods=Mod.double_time, clock_rate=1.0),
    )
    assert attributes.clock_rate == 1
    assert attributes.stars == nomod.stars
    assert attributes.approach_rate == nomod.approach_rate

    custom = calculate_difficulty(jumps, DifficultySettings(clock_rate=1.2))
    assert custom.clock_rate == 1.2
    assert nomod.stars < custom.stars


def test_hard_rock_settings(beatmap):
    attributes = calculate_difficulty(
        beatmap,
        DifficultySettings(mods=Mod.hard_rock),
    )
    assert attributes.approach_rate == 10
    assert attributes.overall_difficulty == 10
    assert attributes.circle_size == pytest.approx(5.2)
    assert attributes.hp_drain_rate == pytest.approx(7)


def test_overrides(beatmap):
    attributes = calculate_difficulty(
        beatmap,
        DifficultySettings(approach_rate=7, overall_difficulty=5),
    )
    assert attributes.approach_rate == 7
    assert attributes.overall_difficulty == 5

    # overrides are adjusted by mods unless they already include them
    adjusted = calculate_difficulty(
        beatmap,
        DifficultySettings(mods=Mod.hard_rock, approach_rate=7),
    )
    assert adjusted.approach_rate == pytest.approx(9.8)

    exact = calculate_difficulty(
        beatmap,
        DifficultySettings(
            mods=Mod.hard_rock,
            approach_rate=7,
            ar_with_mods=True,
        ),
    )
    assert exact.approach_rate == 7


def test_circle_size_override_changes_strain(beatmap):
    small = calculate_difficulty(beatmap, DifficultySettings(circle_size=7))
    large = calculate_difficulty(beatmap, DifficultySettings(circle_size=2))
    assert small.aim_strain > large.aim_strain


def test_non_finite_positions_fall_back(caplog):
    nan = float('nan')
    beatmap = _circles_map(
        [Position(0, 0), Position(nan, nan), Position(100, 100)],
        circle_size=2,
        overall_difficulty=2,
        approach_rate=2,
    )
    attributes = calculate_difficulty(beatmap)

    # three objects over one second
    expected = 1.6 + math.sqrt(3 / 4) * 1.4
    assert attributes.stars == pytest.approx(expected)
    assert attributes.aim_strain == pytest.approx(expected * 0.6)
    assert attributes.speed_strain == pytest.approx(expected * 0.4)
    assert attributes.slider_factor == 1
    assert 'falling back' in caplog.text


def test_infinite_positions_fall_back():
    inf = float('inf')
    beatmap = _circles_map(
        [Position(0, 0), Position(inf, 0), Position(0, 0)] * 20,
    )
    attributes = calculate_difficulty(beatmap)
    assert math.isfinite(attributes.stars)
    assert 0 <= attributes.stars <= 6


def test_aim_prefers_wide_jumps():
    close = _circles_map([Position(200, 200), Position(250, 200)] * 10)
    wide = _circles_map([Position(0, 0), Position(500, 380)] * 10)
    assert (
        calculate_difficulty(close).aim_strain <
        calculate_difficulty(wide).aim_strain
    )


def test_speed_prefers_short_intervals():
    positions = [Position(100, 100), Position(150, 100)] * 10
    slow = calculate_difficulty(_circles_map(positions, interval=400))
    fast = calculate_difficulty(_circles_map(positions, interval=100))
    assert slow.speed_strain < fast.speed_strain


def test_speed_ignores_slow_stacks():
    stack = _circles_map([Position(256, 192)] * 20, interval=300)
    model = strain_model(stack)
    assert not Speed().strains(model._objects).any()
    assert calculate_difficulty(stack).speed_strain == 0


def test_speed_strain_values():
    # a stack and then a jump, 100ms apart
    model = strain_model(_circles_map(
        [Position(100, 100), Position(100, 100), Position(200, 100)],
        interval=100,
    ))
    strains = Speed().strains(model._objects)

    stacked = 1400 * 1.5 ** 1.5 * 0.8
    assert strains[1] == pytest.approx(stacked)
    assert strains[2] == pytest.approx(
        stacked * 0.3 ** 0.1 + 1400 * 1.5 ** 1.5,
    )


def test_speed_delta_time_floor():
    model = strain_model(_circles_map(
        [Position(100, 100), Position(200, 100)],
        interval=10,
    ))
    strains = Speed().strains(model._objects)
    assert strains[1] == pytest.approx(1400 * (150 / 25) ** 1.5)


def test_aim_strain_values():
    model = strain_model(_circles_map(
        [Position(100, 100), Position(200, 100), Position(100, 100)],
        interval=200,
    ))
    objects = model._objects
    jump = 100 / circle_radius(4)

    strains = Aim().strains(objects)
    first = 23.25 * jump ** 0.99
    assert strains[1] == pytest.approx(first)
    # the way back turns all the way around
    second = 23.25 * (jump ** 0.99 + jump * 0.125)
    assert strains[2] == pytest.approx(first * 0.3 ** 0.2 + second)

    no_sliders = Aim(with_sliders=False).strains(objects)
    assert no_sliders[2] == pytest.approx(strains[2] * 23.55 / 23.25)


def test_skill_strains(beatmap):
    model = strain_model(beatmap)
    objects = model._objects
    for skill in (Aim(), Aim(with_sliders=False), Speed()):
        strains = skill.strains(objects)
        assert len(strains) == len(objects)
        assert strains[0] == 0
        assert (strains >= 0).all()

    with_sliders = Aim().strains(objects) / Aim.slider_skill_multiplier
    without_sliders = (
        Aim(with_sliders=False).strains(objects) /
        Aim.no_slider_skill_multiplier
    )
    assert (with_sliders + 1e-9 >= without_sliders).all()
    assert (with_sliders > without_sliders + 1e-9).any()


def test_model_length_is_clamped(beatmap):
    model = strain_model(beatmap)
    assert len(model) == beatmap.n_objects
    assert model.attributes(10 ** 6) == model.attributes()
    assert model.attributes(-3) == model.attributes(0)


@given(beatmaps(max_objects=25))
@settings(deadline=None, max_examples=50)
def test_prefix_matches_truncated_map(beatmap):
    model = strain_model(beatmap)
    for length in range(beatmap.n_objects + 1):
        truncated = beatmap.copy(hit_objects=beatmap.hit_objects[:length])
        assert model.attributes(length) == calculate_difficulty(truncated)


@given(beatmaps(min_objects=1, max_objects=40))
@settings(deadline=None, max_examples=50)
def test_stars_are_finite_and_bounded(beatmap):
    attributes = calculate_difficulty(beatmap)
    assert math.isfinite(attributes.stars)
    assert 0 <= attributes.stars <= 12
    assert 0 <= attributes.slider_factor <= 1


def test_converted_hold_notes_are_counted():
    mania = Beatmap.parse(
        'osu file format v14\n'
        '[General]\n'
        'Mode: 3\n'
        '[Difficulty]\n'
        'HPDrainRate:8\n'
        'CircleSize:4\n'
        'OverallDifficulty:8\n'
        '[HitObjects]\n'
        '64,192,1000,1,0,0:0:0:0:\n'
        '192,192,1200,128,0,1500:0:0:0:0:\n'
        '320,192,1600,1,0,0:0:0:0:\n'
        '448,192,1800,128,0,2400:0:0:0:0:\n',
    )
    attributes = calculate_difficulty(
        mania,
        DifficultySettings(convert_to=GameMode.standard),
    )
    assert attributes.n_circles == 2
    assert attributes.n_hold_notes == 2
    assert attributes.n_objects == mania.n_objects == 4
    assert attributes.max_combo == 4

    # the reconstructed play covers every object
    assert calculate_performance(attributes) == calculate_performance(
        attributes,
        ScoreParams(n300=4),
    )
