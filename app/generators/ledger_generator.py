import random
from typing import List, Optional

from faker import Faker

from app.engine.match_engine import MatchEngine
from app.engine.profile import MatchProfile
from app.engine.state import DeliveryInput, ExtraType, InningsState, TossDecision, WicketType


class LedgerGenerator:
    """
    Scores random but legal matches through the real engine.
    The same seed always produces the same squads and the same ledger.
    """

    # (kind, weight) per ball
    OUTCOME_WEIGHTS = [
        ("dot", 34),
        ("single", 26),
        ("two", 8),
        ("three", 2),
        ("four", 10),
        ("six", 4),
        ("wide", 4),
        ("no_ball", 2),
        ("bye", 2),
        ("leg_bye", 2),
        ("wicket", 5),
        ("run_out", 1),
        ("retired_hurt", 1),
    ]

    WICKET_WEIGHTS = [
        (WicketType.BOWLED, 25),
        (WicketType.CAUGHT, 45),
        (WicketType.LBW, 15),
        (WicketType.CAUGHT_BEHIND, 10),
        (WicketType.STUMPED, 5),
    ]

    def __init__(self, seed: int = 0, locale: str = "en_IN"):
        self.seed = seed
        self.rng = random.Random(seed)
        self.fake = Faker(locale)
        self.fake.seed_instance(seed)
        self.squads = {}

    def squad(self, side: str, size: int = 11) -> List[str]:
        """Batting order for a side; names are unique across both squads"""
        if side not in self.squads:
            taken = {name for names in self.squads.values() for name in names}
            names = []
            while len(names) < size:
                name = self.fake.name()
                if name not in taken and name not in names:
                    names.append(name)
            self.squads[side] = names
        return self.squads[side]

    def next_delivery(self, innings: InningsState, profile: MatchProfile) -> Optional[DeliveryInput]:
        """
        A delivery the processor will accept for this innings state, or None
        when nobody is left who may bat
        """
        batting = self.squad(innings.batting_side)
        fielding = self.squad(innings.bowling_side)

        appeared = {d.striker for d in innings.deliveries} | {d.non_striker for d in innings.deliveries}
        waiting = [name for name in batting if name not in appeared and name not in innings.dismissed]
        returning = innings.retired if profile.retired_can_return else innings.retired - innings.limit_retired
        waiting += sorted(returning - {innings.striker, innings.non_striker}, key=batting.index)

        striker = innings.striker or (waiting.pop(0) if waiting else None)
        non_striker = innings.non_striker
        batting_alone = profile.last_man_can_play and innings.wickets >= profile.max_wickets
        if non_striker is None and not batting_alone:
            non_striker = waiting.pop(0) if waiting else None
            if non_striker is None:
                return None
        if striker is None:
            return None
        bowler = innings.current_bowler or self._pick_bowler(innings, profile, fielding)

        kind = self._weighted(self.OUTCOME_WEIGHTS)
        if innings.is_free_hit_next and kind == "wicket":
            kind = "run_out"

        delivery = DeliveryInput(striker=striker, non_striker=non_striker, bowler=bowler)
        if kind in ("single", "two", "three", "four", "six"):
            delivery.runs_off_bat = {"single": 1, "two": 2, "three": 3, "four": 4, "six": 6}[kind]
        elif kind == "wide":
            delivery.extra_type = ExtraType.WIDE
            if self.rng.random() < 0.1:
                delivery.extra_runs = profile.wide_runs + 4
        elif kind == "no_ball":
            delivery.extra_type = ExtraType.NO_BALL
            delivery.runs_off_bat = self.rng.choice([0, 0, 1, 4, 6])
        elif kind in ("bye", "leg_bye"):
            delivery.extra_type = ExtraType.BYE if kind == "bye" else ExtraType.LEG_BYE
            delivery.extra_runs = self.rng.choice([1, 1, 2, 4])
        elif kind == "wicket":
            wicket_type = self._weighted(self.WICKET_WEIGHTS)
            delivery.is_wicket = True
            delivery.wicket_type = wicket_type
            delivery.dismissed_batsman = striker
            if wicket_type in (WicketType.CAUGHT, WicketType.CAUGHT_BEHIND, WicketType.STUMPED):
                delivery.fielder = self.rng.choice([name for name in fielding if name != bowler])
        elif kind == "run_out":
            delivery.is_wicket = True
            delivery.wicket_type = WicketType.RUN_OUT
            delivery.dismissed_batsman = self.rng.choice([name for name in (striker, non_striker) if name])
            delivery.runs_off_bat = self.rng.choice([0, 0, 1])
            delivery.fielder = self.rng.choice(fielding)
        elif kind == "retired_hurt":
            delivery.is_wicket = True
            delivery.wicket_type = WicketType.RETIRED_HURT
            delivery.dismissed_batsman = striker
        return delivery

    def play_innings(self, match: MatchEngine, max_deliveries: Optional[int] = None) -> InningsState:
        """Bowl the live innings until it ends, or until max_deliveries balls"""
        innings = match.current_innings()
        number = innings.innings_number
        count = 0
        while not innings.is_completed and (max_deliveries is None or count < max_deliveries):
            delivery = self.next_delivery(innings, match.profile)
            if delivery is None:
                match.close_innings(number)
                return match.get_innings(number)
            outcome = match.apply_delivery(number, delivery)
            innings = outcome.innings
            count += 1
        return innings

    def simulate_match(self, profile: MatchProfile, team_a: str = "Home XI", team_b: str = "Away XI", match_id=1) -> MatchEngine:
        """Toss, both innings and the result, all through MatchEngine"""
        match = MatchEngine(match_id, profile, team_a, team_b)
        match.record_toss(self.rng.choice([team_a, team_b]), self.rng.choice(list(TossDecision)))
        for _ in range(2):
            match.start_innings()
            self.play_innings(match)
            if match.is_finished:
                break
        return match

    def random_ledger(self, profile: MatchProfile, max_deliveries: Optional[int] = None) -> tuple:
        """First-innings ledger of a fresh random match"""
        match = MatchEngine(self.seed, profile, "Home XI", "Away XI")
        match.record_toss("Home XI", TossDecision.BAT)
        match.start_innings()
        return self.play_innings(match, max_deliveries).deliveries

    def _pick_bowler(self, innings: InningsState, profile: MatchProfile, fielding: List[str]) -> str:
        limit = profile.max_overs_per_bowler
        eligible = [
            name for name in fielding[5:]
            if name != innings.previous_over_bowler and (not limit or innings.bowler_overs.get(name, 0) < limit)
        ]
        if not eligible:
            eligible = [
                name for name in fielding
                if name != innings.previous_over_bowler and (not limit or innings.bowler_overs.get(name, 0) < limit)
            ]
        return self.rng.choice(eligible)

    def _weighted(self, options):
        values, weights = zip(*options)
        return self.rng.choices(values, weights=weights)[0]
