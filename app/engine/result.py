"""
Match Result Resolver - turns two completed innings into a result
"""
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, TYPE_CHECKING

from app.engine.errors import IncompleteMatchError
from app.engine.state import InningsState, MatchState, overs_display

if TYPE_CHECKING:
    from app.engine.match_engine import MatchEngine

logger = logging.getLogger(__name__)


class ResultType(str, Enum):
    WIN = "win"
    TIE = "tie"
    NO_RESULT = "no_result"


@dataclass(frozen=True)
class InningsSummary:
    side: str
    runs: int
    wickets: int
    legal_balls: int
    overs: str

    @property
    def score(self) -> str:
        return f"{self.runs}/{self.wickets} ({self.overs})"


@dataclass(frozen=True)
class MatchResult:
    match_id: object
    result_type: ResultType
    team_a: str
    team_b: str
    balls_per_over: int
    winner: Optional[str] = None
    loser: Optional[str] = None
    margin: Optional[str] = None
    margin_runs: Optional[int] = None
    margin_wickets: Optional[int] = None
    balls_remaining: Optional[int] = None
    revised_target: Optional[int] = None  # set when the chase target was revised (DLS)
    first_innings: Optional[InningsSummary] = None
    second_innings: Optional[InningsSummary] = None

    @property
    def summary(self) -> str:
        if self.result_type == ResultType.WIN:
            text = f"{self.winner} won by {self.margin}"
            return f"{text} (DLS)" if self.revised_target is not None else text
        if self.result_type == ResultType.TIE:
            return "Match tied"
        return "No result"

    def innings_for(self, side: str) -> Optional[InningsSummary]:
        """The innings this side batted in, if it batted"""
        for innings in (self.first_innings, self.second_innings):
            if innings is not None and innings.side == side:
                return innings
        return None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["result_type"] = self.result_type.value
        data["summary"] = self.summary
        return data


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class MatchResultResolver:

    def resolve(self, match: "MatchEngine") -> MatchResult:
        profile = match.profile
        first, second = self._summaries(match)

        if match.state in (MatchState.ABANDONED, MatchState.NO_RESULT):
            return MatchResult(
                match_id=match.match_id,
                result_type=ResultType.NO_RESULT,
                team_a=match.team_a,
                team_b=match.team_b,
                balls_per_over=profile.balls_per_over,
                first_innings=first,
                second_innings=second,
            )

        if len(match.innings) < 2 or not all(innings.is_completed for innings in match.innings):
            raise IncompleteMatchError(f"Match {match.match_id} has not finished both innings")

        base = dict(
            match_id=match.match_id,
            team_a=match.team_a,
            team_b=match.team_b,
            balls_per_over=profile.balls_per_over,
            first_innings=first,
            second_innings=second,
        )
        # The chase is judged against its target, which a revision can move
        # away from first-innings runs + 1
        chase = match.innings[1]
        if chase.target_revised:
            base["revised_target"] = chase.target
        par = chase.target - 1
        r2 = second.runs

        if r2 > par:
            wickets_left = profile.all_out_wickets - second.wickets
            balls_remaining = None
            if profile.is_limited_overs:
                balls_remaining = max(0, profile.balls_per_innings - second.legal_balls)
            result = MatchResult(
                result_type=ResultType.WIN,
                winner=second.side,
                loser=first.side,
                margin=_plural(wickets_left, "wicket"),
                margin_wickets=wickets_left,
                balls_remaining=balls_remaining,
                **base,
            )
        elif par > r2:
            result = MatchResult(
                result_type=ResultType.WIN,
                winner=first.side,
                loser=second.side,
                margin=_plural(par - r2, "run"),
                margin_runs=par - r2,
                **base,
            )
        else:
            result = MatchResult(result_type=ResultType.TIE, **base)

        logger.debug("Match %s resolved: %s", match.match_id, result.summary)
        return result

    def _summaries(self, match: "MatchEngine"):
        bpo = match.profile.balls_per_over

        def summarise(innings: InningsState) -> InningsSummary:
            return InningsSummary(
                side=innings.batting_side,
                runs=innings.total_runs,
                wickets=innings.wickets,
                legal_balls=innings.legal_balls,
                overs=overs_display(innings.legal_balls, bpo),
            )

        summaries = [summarise(innings) for innings in match.innings]
        summaries += [None] * (2 - len(summaries))
        return summaries[0], summaries[1]
