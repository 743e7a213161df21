import configparser
from pathlib import Path

from screen.geometry import ScreenGeometry
from solver.optimizer import OPTIMIZE_BUDGET, OptimizeLimits
from solver.search import PAST_LIMIT, STEP_LIMIT, Heuristic, SearchLimits

SETTINGS_PATH = Path(__file__).with_name("settings.ini")

HEURISTIC_ORDER = tuple(h.value for h in Heuristic)

DEFAULT_SOLVER_SETTINGS = {
    "step_limit": str(STEP_LIMIT),
    "past_limit": str(PAST_LIMIT),
    "acceptable_solution_len": "400",
    "heuristic": Heuristic.AVAILABLE_MOVES.value,
    "no_cheat": "false",
    "max_attempts": "0",
    "max_seconds": "0",
    "optimizer_budget": str(OPTIMIZE_BUDGET),
}

DEFAULT_SCREEN_SETTINGS = {
    "offset_h": "488",
    "offset_v": "298",
    "space_h": "164",
    "space_v": "32",
    "box_width": "22",
    "box_height": "18",
    "monitor_offset": "1920",
    "template_dir": "assets",
    "click_delay_ms": "50",
    "move_delay_ms": "100",
}

# (minimum, maximum) for integer settings; None means unbounded.
_SOLVER_RANGES = {
    "step_limit": (1, None),
    "past_limit": (1, None),
    "acceptable_solution_len": (1, None),
    "max_attempts": (0, None),
    "max_seconds": (0, None),
    "optimizer_budget": (0, 12),
}

_SCREEN_RANGES = {
    "offset_h": (0, None),
    "offset_v": (0, None),
    "space_h": (1, None),
    "space_v": (1, None),
    "box_width": (1, None),
    "box_height": (1, None),
    "monitor_offset": (0, None),
    "click_delay_ms": (0, 10_000),
    "move_delay_ms": (0, 10_000),
}

_TRUE_WORDS = ("1", "true", "yes", "on")
_FALSE_WORDS = ("0", "false", "no", "off")


def _clamp_int(raw, default: str, bounds) -> str:
    try:
        value = int(str(raw).strip())
    except Exception:
        value = int(default)
    low, high = bounds
    if low is not None and value < low:
        value = int(default)
    if high is not None and value > high:
        value = high
    return str(value)


def _sanitize(settings, defaults, ranges):
    data = dict(defaults)
    data.update({k: v for k, v in settings.items() if k in defaults})
    for key, bounds in ranges.items():
        data[key] = _clamp_int(data[key], defaults[key], bounds)
    return data


def _sanitize_solver(settings):
    data = _sanitize(settings, DEFAULT_SOLVER_SETTINGS, _SOLVER_RANGES)
    heuristic = str(data["heuristic"]).strip().lower()
    if heuristic not in HEURISTIC_ORDER:
        heuristic = DEFAULT_SOLVER_SETTINGS["heuristic"]
    data["heuristic"] = heuristic
    no_cheat = str(data["no_cheat"]).strip().lower()
    if no_cheat in _TRUE_WORDS:
        data["no_cheat"] = "true"
    elif no_cheat in _FALSE_WORDS:
        data["no_cheat"] = "false"
    else:
        data["no_cheat"] = DEFAULT_SOLVER_SETTINGS["no_cheat"]
    return data


def _sanitize_screen(settings):
    data = _sanitize(settings, DEFAULT_SCREEN_SETTINGS, _SCREEN_RANGES)
    if not str(data["template_dir"]).strip():
        data["template_dir"] = DEFAULT_SCREEN_SETTINGS["template_dir"]
    return data


def default_settings():
    return {"solver": dict(DEFAULT_SOLVER_SETTINGS), "screen": dict(DEFAULT_SCREEN_SETTINGS)}


def load_settings(path: Path = None):
    path = path or SETTINGS_PATH
    if not path.exists():
        return default_settings()
    parser = configparser.ConfigParser()
    try:
        parser.read(path, encoding="utf-8")
    except Exception:
        return default_settings()
    solver = dict(parser["solver"]) if "solver" in parser else {}
    screen = dict(parser["screen"]) if "screen" in parser else {}
    return {"solver": _sanitize_solver(solver), "screen": _sanitize_screen(screen)}


def save_settings(settings, path: Path = None):
    path = path or SETTINGS_PATH
    parser = configparser.ConfigParser()
    parser["solver"] = _sanitize_solver(settings.get("solver", {}))
    parser["screen"] = _sanitize_screen(settings.get("screen", {}))
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        parser.write(f)


def to_search_limits(settings) -> SearchLimits:
    solver = _sanitize_solver(settings.get("solver", {}))
    return SearchLimits(
        max_steps=int(solver["step_limit"]),
        max_visited=int(solver["past_limit"]),
        no_cheat=solver["no_cheat"] == "true",
        heuristic=Heuristic(solver["heuristic"]),
    )


def to_optimize_limits(settings) -> OptimizeLimits:
    solver = _sanitize_solver(settings.get("solver", {}))
    return OptimizeLimits(max_budget=int(solver["optimizer_budget"]))


def to_geometry(settings) -> ScreenGeometry:
    screen = _sanitize_screen(settings.get("screen", {}))
    return ScreenGeometry(
        offset_h=int(screen["offset_h"]),
        offset_v=int(screen["offset_v"]),
        space_h=int(screen["space_h"]),
        space_v=int(screen["space_v"]),
        box_width=int(screen["box_width"]),
        box_height=int(screen["box_height"]),
        monitor_offset=int(screen["monitor_offset"]),
    )


def to_collect_limits(settings) -> tuple:
    """(max_attempts, max_seconds) for repeated searches; 0 in the file means no limit."""
    solver = _sanitize_solver(settings.get("solver", {}))
    attempts = int(solver["max_attempts"])
    seconds = int(solver["max_seconds"])
    return (attempts or None, seconds or None)


def acceptable_solution_len(settings) -> int:
    return int(_sanitize_solver(settings.get("solver", {}))["acceptable_solution_len"])
