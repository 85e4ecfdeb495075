from typing import Callable, Dict, Optional, TypeVar

from app.schemas.races import PRACTICE_SESSIONS, Driver, DriverHistory, PracticeSummary, RaceContext, Weather
from app.services.cache import TTLCache, cache_key

# Temporary in-memory data; replace with a real race/weather/practice provider
DRIVERS_2025 = [
    ("Max Verstappen", "Red Bull Racing"),
    ("Liam Lawson", "Red Bull Racing"),
    ("Lewis Hamilton", "Ferrari"),
    ("Charles Leclerc", "Ferrari"),
    ("George Russell", "Mercedes"),
    ("Andrea Kimi Antonelli", "Mercedes"),
    ("Lando Norris", "McLaren"),
    ("Oscar Piastri", "McLaren"),
    ("Fernando Alonso", "Aston Martin"),
    ("Lance Stroll", "Aston Martin"),
    ("Pierre Gasly", "Alpine"),
    ("Jack Doohan", "Alpine"),
    ("Esteban Ocon", "Haas F1"),
    ("Oliver Bearman", "Haas F1"),
    ("Carlos Sainz Jr.", "Williams"),
    ("Alexander Albon", "Williams"),
    ("Nico Hülkenberg", "Sauber"),
    ("Gabriel Bortoleto", "Sauber"),
    ("Isack Hadjar", "Racing Bulls"),
    ("Yuki Tsunoda", "Racing Bulls"),
]

UPCOMING_RACE = "Melbourne Grand Prix Circuit"

# seconds off the base lap per session; track evolution makes fp3 quickest
SESSION_PACE = {"fp1": 1.2, "fp2": 0.8, "fp3": 0.4}

T = TypeVar("T")

def _cached(cache: Optional[TTLCache], tag: str, category: str, build: Callable[[], T]) -> T:
    key = cache_key(tag, UPCOMING_RACE)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached
    value = build()
    if cache is not None:
        cache.set(key, value, category)
    return value

def _race_data() -> RaceContext:
    # Grid in roster order, form fading down the order
    return RaceContext(
        name=UPCOMING_RACE,
        drivers=[
            Driver(
                name=name,
                team=team,
                qualifying_position=i + 1,
                recent_form=round(0.9 - i * 0.03, 2),
            )
            for i, (name, team) in enumerate(DRIVERS_2025)
        ],
        weather=Weather(rain_chance=20, temperature=24),
    )

def _practice_data() -> Dict[str, PracticeSummary]:
    sessions = {}
    for session in PRACTICE_SESSIONS:
        lap_times, tires = {}, {}
        for i, (name, _) in enumerate(DRIVERS_2025):
            lap = 78.0 + i * 0.12 + SESSION_PACE[session]
            lap_times[name] = [round(lap, 3), round(lap + 0.25, 3), round(lap + 0.1, 3)]
            tires[name] = [round(0.88 - i * 0.02, 2)]
        sessions[session] = PracticeSummary(lap_times=lap_times, tire_performance=tires)
    return sessions

def _historical_data() -> Dict[str, DriverHistory]:
    return {
        name: DriverHistory(
            last_race=round(0.85 - i * 0.03, 2),
            last_three_races=round(0.85 - i * 0.025, 2),
            season_performance=round(0.8 - i * 0.025, 2),
            track_history=round(0.8 - i * 0.03, 2),
        )
        for i, (name, _) in enumerate(DRIVERS_2025)
    }

def get_practice_sessions(cache: Optional[TTLCache] = None) -> Dict[str, PracticeSummary]:
    return _cached(cache, "practice", "practice_data", _practice_data)

def get_driver_history(cache: Optional[TTLCache] = None) -> Dict[str, DriverHistory]:
    return _cached(cache, "historical", "historical_data", _historical_data)

def get_upcoming_race_context(cache: Optional[TTLCache] = None) -> RaceContext:
    """Grid, weather, practice and history for the next race.

    Each part is cached under its own category, so practice data refreshes
    more often than the grid and history far less often.
    """
    base = _cached(cache, "race_data", "race_data", _race_data)
    history = get_driver_history(cache)
    return base.model_copy(update={
        "drivers": [d.model_copy(update={"history": history.get(d.name)}) for d in base.drivers],
        "practice": get_practice_sessions(cache),
    })
