"""
Match profiles - named rule sets a match is scored under
"""
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class MatchProfile:
    """Rules for one format. Passed by value into every processor call."""
    name: str = "ICC T20"
    overs_per_innings: int = 20  # 0 = unlimited
    balls_per_over: int = 6
    wide_runs: int = 1
    no_ball_runs: int = 1
    free_hit_enabled: bool = True
    powerplay_overs: int = 6
    max_overs_per_bowler: int = 4  # 0 = unlimited
    max_wickets: int = 10
    free_hit_on_wide: bool = False
    retire_at_score: int = 0  # 0 = never
    retired_can_return: bool = True
    last_man_can_play: bool = False

    def __post_init__(self):
        if self.overs_per_innings < 0:
            raise ValueError("overs_per_innings must be >= 0")
        if self.balls_per_over < 1:
            raise ValueError("balls_per_over must be >= 1")
        if self.wide_runs < 0 or self.no_ball_runs < 0:
            raise ValueError("wide_runs and no_ball_runs must be >= 0")
        if self.powerplay_overs < 0:
            raise ValueError("powerplay_overs must be >= 0")
        if self.max_overs_per_bowler < 0:
            raise ValueError("max_overs_per_bowler must be >= 0")
        if self.max_wickets < 1:
            raise ValueError("max_wickets must be >= 1")
        if self.retire_at_score < 0:
            raise ValueError("retire_at_score must be >= 0")

    @property
    def is_limited_overs(self) -> bool:
        return self.overs_per_innings > 0

    @property
    def balls_per_innings(self) -> int:
        """Legal balls available to one innings, 0 when unlimited"""
        return self.overs_per_innings * self.balls_per_over

    @property
    def all_out_wickets(self) -> int:
        """Wickets that end an innings; one more when the last man may bat alone"""
        return self.max_wickets + (1 if self.last_man_can_play else 0)

    def is_powerplay_over(self, over_number: int) -> bool:
        return over_number < self.powerplay_overs

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MatchProfile":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in fields})


PROFILES = {
    "ICC T20": MatchProfile(),
    "ICC ODI": MatchProfile(
        name="ICC ODI",
        overs_per_innings=50,
        powerplay_overs=10,
        max_overs_per_bowler=10,
    ),
    "T10": MatchProfile(
        name="T10",
        overs_per_innings=10,
        powerplay_overs=2,
        max_overs_per_bowler=2,
    ),
    "Club 16": MatchProfile(
        name="Club 16",
        overs_per_innings=16,
        powerplay_overs=4,
        max_overs_per_bowler=4,
        retire_at_score=30,
        last_man_can_play=True,
    ),
    # Pairs cricket: five pairs bat, nobody is capped on overs
    "Pairs": MatchProfile(
        name="Pairs",
        overs_per_innings=20,
        wide_runs=2,
        no_ball_runs=2,
        powerplay_overs=0,
        max_overs_per_bowler=0,
        max_wickets=5,
    ),
}


def get_profile(name: str) -> MatchProfile:
    """Look up a preset by name"""
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown match profile: {name}") from None
