"""
Tournament Standings Updater - points table and net run rate
"""
import logging
from dataclasses import dataclass, replace
from typing import List, Tuple

from app.engine.errors import StandingsAlreadyAppliedError
from app.engine.result import MatchResult, ResultType
from app.engine.state import overs_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointsTable:
    """Points per outcome. Supplied by the tournament, never hardcoded in the engine."""
    win: int = 2
    tie: int = 1
    loss: int = 0
    no_result: int = 0


@dataclass(frozen=True)
class TournamentTeamStanding:
    team_id: str
    matches_played: int = 0
    won: int = 0
    lost: int = 0
    tied: int = 0
    no_result: int = 0
    points: int = 0
    runs_scored: int = 0
    overs_faced: float = 0.0
    runs_conceded: int = 0
    overs_bowled: float = 0.0
    nrr: float = 0.0
    applied_matches: frozenset = frozenset()


def net_run_rate(runs_scored: int, overs_faced: float, runs_conceded: int, overs_bowled: float) -> float:
    """NRR: (runs scored / overs faced) - (runs conceded / overs bowled)"""
    if overs_faced == 0 or overs_bowled == 0:
        return 0.0
    return round(runs_scored / overs_faced - runs_conceded / overs_bowled, 3)


class StandingsUpdater:
    """Applies one resolved match to both teams' standings, exactly once"""

    def apply(
        self,
        standing_a: TournamentTeamStanding,
        standing_b: TournamentTeamStanding,
        result: MatchResult,
        points: PointsTable,
    ) -> Tuple[TournamentTeamStanding, TournamentTeamStanding]:
        teams = {result.team_a, result.team_b}
        for standing in (standing_a, standing_b):
            if standing.team_id not in teams:
                raise ValueError(f"Team {standing.team_id} did not play match {result.match_id}")
            if result.match_id in standing.applied_matches:
                raise StandingsAlreadyAppliedError(result.match_id, standing.team_id)
        if standing_a.team_id == standing_b.team_id:
            raise ValueError("Both standings belong to the same team")

        updated = self._apply_one(standing_a, result, points), self._apply_one(standing_b, result, points)
        logger.info(
            "Standings updated for match %s: %s %d pts (NRR %+.3f), %s %d pts (NRR %+.3f)",
            result.match_id,
            updated[0].team_id, updated[0].points, updated[0].nrr,
            updated[1].team_id, updated[1].points, updated[1].nrr,
        )
        return updated

    def _apply_one(
        self, standing: TournamentTeamStanding, result: MatchResult, points: PointsTable
    ) -> TournamentTeamStanding:
        team = standing.team_id
        changes = dict(
            matches_played=standing.matches_played + 1,
            applied_matches=standing.applied_matches | {result.match_id},
        )

        if result.result_type == ResultType.WIN:
            if result.winner == team:
                changes.update(won=standing.won + 1, points=standing.points + points.win)
            else:
                changes.update(lost=standing.lost + 1, points=standing.points + points.loss)
        elif result.result_type == ResultType.TIE:
            changes.update(tied=standing.tied + 1, points=standing.points + points.tie)
        else:
            changes.update(no_result=standing.no_result + 1, points=standing.points + points.no_result)

        # No-result matches stay out of the run rate
        if result.result_type != ResultType.NO_RESULT:
            opponent = result.team_b if team == result.team_a else result.team_a
            batted = result.innings_for(team)
            bowled = result.innings_for(opponent)
            bpo = result.balls_per_over
            if batted is not None:
                changes.update(
                    runs_scored=standing.runs_scored + batted.runs,
                    overs_faced=standing.overs_faced + overs_decimal(batted.legal_balls, bpo),
                )
            if bowled is not None:
                changes.update(
                    runs_conceded=standing.runs_conceded + bowled.runs,
                    overs_bowled=standing.overs_bowled + overs_decimal(bowled.legal_balls, bpo),
                )

        updated = replace(standing, **changes)
        return replace(
            updated,
            nrr=net_run_rate(updated.runs_scored, updated.overs_faced, updated.runs_conceded, updated.overs_bowled),
        )

    def rank(self, standings: List[TournamentTeamStanding]) -> List[TournamentTeamStanding]:
        """Sort by points, then NRR"""
        return sorted(standings, key=lambda s: (s.points, s.nrr), reverse=True)
