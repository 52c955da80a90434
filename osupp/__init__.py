from .attributes import OsuDifficultyAttributes, OsuPerformanceAttributes
from .beatmap import (
    Beatmap,
    Circle,
    HitObject,
    HoldNote,
    Slider,
    Spinner,
    TimingPoint,
)
from .difficulty import DifficultySettings, calculate_difficulty
from .game_mode import GameMode
from .gradual import GradualDifficulty, GradualPerformance
from .mod import Mod
from .performance import ScoreParams, calculate_performance
from .position import Position
from .score_state import HitResult, HitResultPriority, ScoreState

__version__ = "0.1.0"


__all__ = [
    "Beatmap",
    "Circle",
    "DifficultySettings",
    "GameMode",
    "GradualDifficulty",
    "GradualPerformance",
    "HitObject",
    "HitResult",
    "HitResultPriority",
    "HoldNote",
    "Mod",
    "OsuDifficultyAttributes",
    "OsuPerformanceAttributes",
    "Position",
    "ScoreParams",
    "ScoreState",
    "Slider",
    "Spinner",
    "TimingPoint",
    "calculate_difficulty",
    "calculate_performance",
]
