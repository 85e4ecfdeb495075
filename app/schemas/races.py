from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict

PRACTICE_SESSIONS = ("fp1", "fp2", "fp3")

class DriverHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    last_race: Optional[float] = Field(None, ge=0, le=1)
    last_three_races: Optional[float] = Field(None, ge=0, le=1)
    season_performance: Optional[float] = Field(None, ge=0, le=1)
    track_history: Optional[float] = Field(None, ge=0, le=1)

class Driver(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    team: str
    recent_form: Optional[float] = Field(None, ge=0, le=1)
    qualifying_position: Optional[int] = Field(None, ge=1)
    history: Optional[DriverHistory] = None

    # weather traits
    wet_performance: Optional[float] = Field(None, ge=0, le=1)
    temperature_sensitivity: Optional[float] = Field(None, ge=0, le=1)

    # reliability history (technical DNFs over the last 3 races)
    technical_dnfs: Optional[int] = Field(None, ge=0)
    component_life: Optional[float] = Field(None, ge=0, le=1)
    consistency_rate: Optional[float] = Field(None, ge=0, le=1)

class Weather(BaseModel):
    model_config = ConfigDict(frozen=True)

    rain_chance: Optional[float] = Field(None, ge=0, le=100)
    temperature: Optional[float] = None  # celsius

class PracticeSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    lap_times: Dict[str, List[float]] = {}
    tire_performance: Dict[str, List[float]] = {}

class RaceContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    drivers: List[Driver] = []
    weather: Optional[Weather] = None
    practice: Dict[str, PracticeSummary] = {}
    team_performance: Dict[str, float] = {}

    @field_validator("practice")
    @classmethod
    def _known_sessions(cls, v):
        unknown = sorted(set(v) - set(PRACTICE_SESSIONS))
        if unknown:
            raise ValueError(f"unknown practice session(s): {', '.join(unknown)}")
        return v
