import logging

import click

from . import (
    Beatmap,
    DifficultySettings,
    GradualPerformance,
    HitResultPriority,
    ScoreParams,
    calculate_difficulty,
    calculate_performance,
)
from .cli import GAME_MODE, MODS, format_mods, maybe_show_progress


def _read_beatmap(path):
    try:
        return Beatmap.from_path(path)
    except ValueError as e:
        raise click.BadParameter(
            f'failed to parse {path!r}: {e}',
            param_hint='BEATMAP',
        )


def _show_index(ix):
    if ix is None:
        return None
    return f'object {ix + 1}'


def _settings(mods, clock_rate, ar, od, cs, hp, mode):
    try:
        return DifficultySettings(
            mods=mods,
            clock_rate=clock_rate,
            approach_rate=ar,
            overall_difficulty=od,
            circle_size=cs,
            drain_rate=hp,
            convert_to=mode,
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--clock-rate')


def _difficulty_options(f):
    options = [
        click.argument(
            'beatmap',
            type=click.Path(exists=True, dir_okay=False),
        ),
        click.option(
            '--mods',
            type=MODS,
            default='NM',
            help='The mods to apply, for example HDHR.',
        ),
        click.option(
            '--clock-rate',
            type=float,
            default=None,
            help='Override the speed multiplier implied by the mods.',
        ),
        click.option('--ar', type=float, default=None, help='Override AR.'),
        click.option('--od', type=float, default=None, help='Override OD.'),
        click.option('--cs', type=float, default=None, help='Override CS.'),
        click.option('--hp', type=float, default=None, help='Override HP.'),
        click.option(
            '--mode',
            type=GAME_MODE,
            default=None,
            help='Convert the beatmap to this mode first.',
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group()
@click.option(
    '-v',
    '--verbose',
    count=True,
    help='Log more, may be repeated.',
)
def main(verbose):
    """osu! difficulty and performance calculator.
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level)


@main.command()
@_difficulty_options
def difficulty(beatmap, mods, clock_rate, ar, od, cs, hp, mode):
    """Show the difficulty attributes of a beatmap.
    """
    beatmap = _read_beatmap(beatmap)
    try:
        attributes = calculate_difficulty(
            beatmap,
            _settings(mods, clock_rate, ar, od, cs, hp, mode),
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f'{beatmap.display_name} +{format_mods(mods)}')
    for name, value in attributes._asdict().items():
        if name == 'mods':
            value = format_mods(value)
        elif isinstance(value, float):
            value = f'{value:.4f}'
        click.echo(f'  {name}: {value}')


@main.command()
@_difficulty_options
@click.option(
    '--accuracy',
    '-a',
    type=click.FloatRange(0, 100),
    multiple=True,
    help='The accuracy of the play, may be repeated.',
)
@click.option('--misses', type=click.IntRange(0), default=0)
@click.option('--combo', type=click.IntRange(0), default=None)
@click.option('--n300', type=click.IntRange(0), default=None)
@click.option('--n100', type=click.IntRange(0), default=None)
@click.option('--n50', type=click.IntRange(0), default=None)
@click.option(
    '--worst-case/--best-case',
    default=False,
    help='How to guess hit counts from an accuracy.',
)
def performance(beatmap,
                mods,
                clock_rate,
                ar,
                od,
                cs,
                hp,
                mode,
                accuracy,
                misses,
                combo,
                n300,
                n100,
                n50,
                worst_case):
    """Show the performance points of plays on a beatmap.
    """
    beatmap = _read_beatmap(beatmap)
    try:
        attributes = calculate_difficulty(
            beatmap,
            _settings(mods, clock_rate, ar, od, cs, hp, mode),
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    priority = (
        HitResultPriority.worst_case
        if worst_case else
        HitResultPriority.best_case
    )
    if n300 is not None or n100 is not None or n50 is not None:
        scores = [ScoreParams(
            n300=n300,
            n100=n100,
            n50=n50,
            misses=misses,
            combo=combo,
        )]
    else:
        scores = [
            ScoreParams(
                accuracy=acc,
                misses=misses,
                combo=combo,
                priority=priority,
            )
            for acc in (accuracy or (95.0, 98.0, 99.0, 100.0))
        ]

    click.echo(
        f'{beatmap.display_name} +{format_mods(mods)}'
        f' ({attributes.stars:.2f} stars)',
    )
    for score in scores:
        result = calculate_performance(attributes, score)
        if score.has_hit_counts:
            label = f'{score.n300 or 0}/{score.n100 or 0}/{score.n50 or 0}'
        else:
            label = f'{score.accuracy:.2f}%'
        click.echo(
            f'  {label} {score.misses}x: {result.pp:.2f}pp'
            f' (aim {result.aim_pp:.2f}, speed {result.speed_pp:.2f},'
            f' acc {result.accuracy_pp:.2f},'
            f' flashlight {result.flashlight_pp:.2f})',
        )


@main.command()
@_difficulty_options
@click.option(
    '--accuracy',
    '-a',
    type=click.FloatRange(0, 100),
    default=100.0,
    help='The accuracy of the play.',
)
@click.option(
    '--step',
    type=click.IntRange(1),
    default=100,
    help='Print every ``step`` objects.',
)
@click.option(
    '--progress/--no-progress',
    help='Show a progress bar?',
    default=False,
)
def gradual(beatmap,
            mods,
            clock_rate,
            ar,
            od,
            cs,
            hp,
            mode,
            accuracy,
            step,
            progress):
    """Show how the performance of a play grows through a beatmap.
    """
    beatmap = _read_beatmap(beatmap)
    try:
        driver = GradualPerformance(
            beatmap,
            _settings(mods, clock_rate, ar, od, cs, hp, mode),
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    rows = []
    indices = range(step - 1, driver.n_objects, step)
    with maybe_show_progress(
            indices,
            progress,
            label='Calculating',
            item_show_func=_show_index) as ixs:
        for ix in ixs:
            result = driver.at_index(
                ix,
                ScoreParams(accuracy=accuracy),
            )
            rows.append((ix + 1, result))

    for n, result in rows:
        click.echo(
            f'  {n:>5} objects: {result.stars:.2f} stars,'
            f' {result.pp:.2f}pp',
        )

    result = None
    if not rows or rows[-1][0] != driver.n_objects:
        result = driver.last(ScoreParams(accuracy=accuracy))
    if result is not None:
        click.echo(
            f'  {driver.n_objects:>5} objects: {result.stars:.2f} stars,'
            f' {result.pp:.2f}pp',
        )


if __name__ == '__main__':
    main()
