import pytest

from app.schemas.races import Driver, DriverHistory, PracticeSummary, RaceContext, Weather
from app.services.estimators import Estimators


class FakeClock:
    """Manual clock; ``wait`` jumps forward instead of sleeping."""

    def __init__(self, now=1000.0):
        self.now = now
        self.waits = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def wait(self, seconds, cancel=None):
        self.waits.append(seconds)
        self.now += seconds
        return False


class FakeResponse:
    """Stand-in for ``requests.Response``; a None payload is invalid JSON."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FixedEstimators(Estimators):
    def __init__(self, probabilities=None, technical=0.2, strategic=0.3,
                 weather_reliability=0.9, historical_accuracy=0.7):
        self.probabilities = probabilities
        self.technical = technical
        self.strategic = strategic
        self.weather = weather_reliability
        self.historical = historical_accuracy

    def win_probabilities(self, scores):
        if self.probabilities is None:
            return super().win_probabilities(scores)
        return {s.name: self.probabilities.get(s.name, 0.0) for s in scores}

    def technical_risk(self, context):
        return self.technical

    def strategic_risk(self, context):
        return self.strategic

    def weather_reliability(self, context):
        return self.weather

    def historical_accuracy(self, context):
        return self.historical


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def complete_driver():
    return Driver(
        name="Lando Norris",
        team="McLaren",
        recent_form=0.8,
        qualifying_position=1,
        history=DriverHistory(last_race=0.8, last_three_races=0.8, season_performance=0.8, track_history=0.8),
        wet_performance=0.7,
        temperature_sensitivity=0.6,
        technical_dnfs=0,
        component_life=0.9,
        consistency_rate=0.9,
    )


@pytest.fixture
def bare_driver():
    return Driver(name="Jack Doohan", team="Alpine")


@pytest.fixture
def race(complete_driver, bare_driver):
    session = PracticeSummary(
        lap_times={"Lando Norris": [80.0, 80.4, 80.2]},
        tire_performance={"Lando Norris": [0.8, 0.8]},
    )
    return RaceContext(
        name="Monaco Grand Prix",
        drivers=[complete_driver, bare_driver],
        weather=Weather(rain_chance=30, temperature=20),
        practice={"fp1": session, "fp2": session, "fp3": session},
        team_performance={"McLaren": 0.9},
    )
