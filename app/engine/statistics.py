"""
Statistics Engine - scorecards derived from the delivery ledger.

Everything here is a projection: it replays deliveries in ledger order and
never looks at the processor's running counters, so any prefix of a ledger
gives a valid (if stale) scorecard and the same ledger always gives the same
output.
"""
from dataclasses import dataclass, field, asdict
from typing import Iterable, List, Optional

from app.engine.profile import MatchProfile
from app.engine.state import Delivery, ExtraType, WicketType, overs_display


@dataclass
class BattingEntry:
    batsman: str
    position: int
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: float = 0.0
    status: str = "did not bat"
    dismissal: str = ""
    is_out: bool = False


@dataclass
class BowlingEntry:
    bowler: str
    overs: str = "0.0"
    legal_balls: int = 0
    maidens: int = 0
    runs: int = 0
    wickets: int = 0
    economy: float = 0.0
    dots: int = 0
    wides: int = 0
    no_balls: int = 0


@dataclass
class FieldingEntry:
    fielder: str
    catches: int = 0
    stumpings: int = 0
    run_outs: int = 0


@dataclass
class FallOfWicket:
    wicket: int
    score: int
    batsman: str
    overs: str


@dataclass
class Partnership:
    wicket: int
    batsman1: str
    batsman2: Optional[str]  # None while the last man bats alone
    runs: int = 0
    balls: int = 0
    batsman1_runs: int = 0
    batsman2_runs: int = 0
    unbroken: bool = False


@dataclass
class ExtrasBreakdown:
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0
    penalties: int = 0

    @property
    def total(self) -> int:
        return self.wides + self.no_balls + self.byes + self.leg_byes + self.penalties


@dataclass
class OverSummary:
    over_number: int
    bowler: str
    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0


@dataclass
class PowerplaySummary:
    overs: str
    runs: int
    wickets: int


@dataclass
class InningsTotals:
    runs: int
    wickets: int
    legal_balls: int
    overs: str
    run_rate: float
    target: Optional[int] = None
    runs_required: Optional[int] = None
    balls_remaining: Optional[int] = None
    required_run_rate: Optional[float] = None


@dataclass
class InningsStatistics:
    batting: List[BattingEntry]
    bowling: List[BowlingEntry]
    fielding: List[FieldingEntry]
    fall_of_wickets: List[FallOfWicket]
    partnerships: List[Partnership]
    extras: ExtrasBreakdown
    totals: InningsTotals
    overs: List[OverSummary] = field(default_factory=list)
    powerplay: Optional[PowerplaySummary] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["extras"]["total"] = self.extras.total
        return data


DISMISSAL_FORMATS = {
    WicketType.BOWLED: "b {bowler}",
    WicketType.CAUGHT: "c {fielder} b {bowler}",
    WicketType.CAUGHT_BEHIND: "c †{fielder} b {bowler}",
    WicketType.CAUGHT_AND_BOWLED: "c & b {bowler}",
    WicketType.LBW: "lbw b {bowler}",
    WicketType.STUMPED: "st †{fielder} b {bowler}",
    WicketType.RUN_OUT: "run out ({fielder})",
    WicketType.HIT_WICKET: "hit wicket b {bowler}",
    WicketType.OBSTRUCTING_FIELD: "obstructing the field",
    WicketType.TIMED_OUT: "timed out",
    WicketType.RETIRED_HURT: "retired hurt",
    WicketType.RETIRED_OUT: "retired out",
}


def format_dismissal(delivery: Delivery) -> str:
    """Scorecard text for the wicket on this delivery"""
    if not delivery.is_wicket or delivery.wicket_type is None:
        return ""
    fielder = delivery.fielder
    if fielder is None:
        fielder = "wk" if delivery.wicket_type in (WicketType.CAUGHT_BEHIND, WicketType.STUMPED) else "?"
    return DISMISSAL_FORMATS[delivery.wicket_type].format(bowler=delivery.bowler, fielder=fielder)


def limit_retirements(balls: List[Delivery], profile: Optional[MatchProfile]) -> dict:
    """
    Sequence -> batsmen sent off on reaching the profile's retire_at_score
    after that delivery. Mirrors the processor's running-score check.
    """
    if profile is None or not profile.retire_at_score:
        return {}
    runs = {}
    done = set()
    result = {}
    for ball in balls:
        if ball.runs_off_bat:
            runs[ball.striker] = runs.get(ball.striker, 0) + ball.runs_off_bat
        for name in (ball.striker, ball.non_striker):
            if name is None or name in done or (ball.is_wicket and name == ball.dismissed_batsman):
                continue
            if runs.get(name, 0) >= profile.retire_at_score:
                done.add(name)
                result.setdefault(ball.sequence, []).append(name)
    return result


def _rate(runs: int, balls: int, per: int) -> float:
    if balls == 0:
        return 0.0
    return round(runs / balls * per, 2)


class StatisticsEngine:
    """Builds batting, bowling and fielding cards plus innings summaries from a ledger"""

    def compute(
        self,
        deliveries: Iterable[Delivery],
        profile: MatchProfile,
        target: Optional[int] = None,
        upto: Optional[int] = None,
        lineup: Optional[List[str]] = None,
    ) -> InningsStatistics:
        """
        Replay the ledger into scorecards.

        upto bounds the replay to the first N deliveries, so a reader that
        fixed the ledger length once gets a consistent snapshot.
        lineup lists the batting side; anyone in it who never reached the
        crease is reported as "did not bat".
        """
        balls = list(deliveries)
        if upto is not None:
            balls = balls[:upto]

        return InningsStatistics(
            batting=self.batting_card(balls, lineup, profile),
            bowling=self.bowling_card(balls, profile),
            fielding=self.fielding_credits(balls),
            fall_of_wickets=self.fall_of_wickets(balls, profile),
            partnerships=self.partnerships(balls, profile),
            extras=self.extras(balls),
            totals=self.totals(balls, profile, target),
            overs=self.over_summaries(balls),
            powerplay=self.powerplay(balls, profile),
        )

    def batting_card(
        self, balls: List[Delivery], lineup: Optional[List[str]] = None, profile: Optional[MatchProfile] = None
    ) -> List[BattingEntry]:
        entries = {}
        retired = {}  # name -> status while off the field
        sent_off = limit_retirements(balls, profile)

        def at_crease(name: str) -> BattingEntry:
            if name not in entries:
                entries[name] = BattingEntry(batsman=name, position=len(entries) + 1)
            retired.pop(name, None)
            return entries[name]

        for ball in balls:
            batter = at_crease(ball.striker)
            if ball.non_striker is not None:
                at_crease(ball.non_striker)

            batter.runs += ball.runs_off_bat
            if ball.is_legal or ball.extra_type == ExtraType.NO_BALL:
                batter.balls += 1
            if ball.is_boundary and ball.runs_off_bat == 4:
                batter.fours += 1
            if ball.is_boundary and ball.runs_off_bat == 6:
                batter.sixes += 1

            if ball.is_wicket:
                out = entries[ball.dismissed_batsman or ball.striker]
                if ball.wicket_type == WicketType.RETIRED_HURT:
                    retired[out.batsman] = "retired hurt"
                else:
                    out.is_out = True
                out.dismissal = format_dismissal(ball)
            for name in sent_off.get(ball.sequence, ()):
                retired[name] = "retired"
                entries[name].dismissal = "retired not out"

        for name in lineup or []:
            if name not in entries:
                entries[name] = BattingEntry(batsman=name, position=len(entries) + 1)

        for entry in entries.values():
            entry.strike_rate = _rate(entry.runs, entry.balls, 100)
            if entry.is_out:
                entry.status = "out"
            elif entry.batsman in retired:
                entry.status = retired[entry.batsman]
            elif entry.balls > 0:
                entry.status = "not out"
                entry.dismissal = "not out"
            else:
                entry.status = "did not bat"
                entry.dismissal = ""
        return list(entries.values())

    def bowling_card(self, balls: List[Delivery], profile: MatchProfile) -> List[BowlingEntry]:
        bpo = profile.balls_per_over
        entries = {}
        over_groups = {}  # (bowler, over) -> [legal balls, conceded]

        for ball in balls:
            if ball.is_non_delivery:
                continue
            entry = entries.setdefault(ball.bowler, BowlingEntry(bowler=ball.bowler))
            group = over_groups.setdefault((ball.bowler, ball.over_number), [0, 0])

            conceded = ball.bowler_conceded
            entry.runs += conceded
            group[1] += conceded
            if ball.is_legal:
                entry.legal_balls += 1
                group[0] += 1
                if conceded == 0:
                    entry.dots += 1
            if ball.extra_type == ExtraType.WIDE:
                entry.wides += 1
            elif ball.extra_type == ExtraType.NO_BALL:
                entry.no_balls += 1
            if ball.bowler_wicket:
                entry.wickets += 1

        for (bowler, _over), (legal, conceded) in over_groups.items():
            if legal == bpo and conceded == 0:
                entries[bowler].maidens += 1

        for entry in entries.values():
            entry.overs = overs_display(entry.legal_balls, bpo)
            entry.economy = _rate(entry.runs, entry.legal_balls, bpo)
        return list(entries.values())

    def fielding_credits(self, balls: List[Delivery]) -> List[FieldingEntry]:
        entries = {}

        def credit(name: Optional[str]) -> Optional[FieldingEntry]:
            if not name:
                return None
            return entries.setdefault(name, FieldingEntry(fielder=name))

        for ball in balls:
            if not ball.counts_as_wicket:
                continue
            kind = ball.wicket_type
            if kind in (WicketType.CAUGHT, WicketType.CAUGHT_BEHIND):
                entry = credit(ball.fielder)
                if entry:
                    entry.catches += 1
            elif kind == WicketType.CAUGHT_AND_BOWLED:
                credit(ball.bowler).catches += 1
            elif kind == WicketType.STUMPED:
                entry = credit(ball.fielder)
                if entry:
                    entry.stumpings += 1
            elif kind == WicketType.RUN_OUT:
                entry = credit(ball.fielder)
                if entry:
                    entry.run_outs += 1
        return list(entries.values())

    def fall_of_wickets(self, balls: List[Delivery], profile: MatchProfile) -> List[FallOfWicket]:
        fow = []
        score = 0
        legal = 0
        for ball in balls:
            score += ball.total_runs
            if ball.is_legal:
                legal += 1
            if ball.counts_as_wicket:
                fow.append(FallOfWicket(
                    wicket=len(fow) + 1,
                    score=score,
                    batsman=ball.dismissed_batsman or ball.striker,
                    overs=overs_display(legal, profile.balls_per_over),
                ))
        return fow

    def partnerships(self, balls: List[Delivery], profile: Optional[MatchProfile] = None) -> List[Partnership]:
        """Stands are numbered by the wicket they were batting for"""
        result = []
        current = None
        wickets = 0
        sent_off = limit_retirements(balls, profile)
        for ball in balls:
            if current is None:
                current = Partnership(
                    wicket=wickets + 1,
                    batsman1=ball.striker,
                    batsman2=ball.non_striker,
                )
            current.runs += ball.total_runs
            if ball.is_legal:
                current.balls += 1
            if ball.striker == current.batsman1:
                current.batsman1_runs += ball.runs_off_bat
            elif ball.striker == current.batsman2:
                current.batsman2_runs += ball.runs_off_bat

            if ball.counts_as_wicket:
                wickets += 1
            # Retirements also break the stand
            if ball.is_wicket or ball.sequence in sent_off:
                result.append(current)
                current = None

        if current is not None:
            current.unbroken = True
            result.append(current)
        return result

    def extras(self, balls: List[Delivery]) -> ExtrasBreakdown:
        extras = ExtrasBreakdown()
        for ball in balls:
            if ball.extra_type == ExtraType.WIDE:
                extras.wides += ball.extra_runs
            elif ball.extra_type == ExtraType.NO_BALL:
                extras.no_balls += ball.extra_runs
            elif ball.extra_type == ExtraType.BYE:
                extras.byes += ball.extra_runs
            elif ball.extra_type == ExtraType.LEG_BYE:
                extras.leg_byes += ball.extra_runs
            elif ball.extra_type == ExtraType.PENALTY:
                extras.penalties += ball.extra_runs
        return extras

    def totals(self, balls: List[Delivery], profile: MatchProfile, target: Optional[int] = None) -> InningsTotals:
        bpo = profile.balls_per_over
        runs = sum(ball.total_runs for ball in balls)
        wickets = sum(1 for ball in balls if ball.counts_as_wicket)
        legal = sum(1 for ball in balls if ball.is_legal)

        totals = InningsTotals(
            runs=runs,
            wickets=wickets,
            legal_balls=legal,
            overs=overs_display(legal, bpo),
            run_rate=_rate(runs, legal, bpo),
        )
        if target is not None:
            totals.target = target
            totals.runs_required = max(0, target - runs)
            if profile.is_limited_overs:
                totals.balls_remaining = max(0, profile.balls_per_innings - legal)
                if totals.balls_remaining > 0:
                    totals.required_run_rate = _rate(totals.runs_required, totals.balls_remaining, bpo)
        return totals

    def over_summaries(self, balls: List[Delivery]) -> List[OverSummary]:
        overs = {}
        for ball in balls:
            summary = overs.setdefault(ball.over_number, OverSummary(over_number=ball.over_number, bowler=""))
            if not summary.bowler and not ball.is_non_delivery:
                summary.bowler = ball.bowler
            summary.runs += ball.total_runs
            if ball.counts_as_wicket:
                summary.wickets += 1
            if ball.is_legal:
                summary.legal_balls += 1
        return list(overs.values())

    def powerplay(self, balls: List[Delivery], profile: MatchProfile) -> Optional[PowerplaySummary]:
        if profile.powerplay_overs == 0:
            return None
        in_powerplay = [ball for ball in balls if ball.is_powerplay]
        return PowerplaySummary(
            overs=overs_display(sum(1 for ball in in_powerplay if ball.is_legal), profile.balls_per_over),
            runs=sum(ball.total_runs for ball in in_powerplay),
            wickets=sum(1 for ball in in_powerplay if ball.counts_as_wicket),
        )
