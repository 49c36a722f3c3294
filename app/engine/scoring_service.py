"""
Scoring Service - runs the engine against the database.

Every call rebuilds the match by replaying its stored ledger, applies one
operation through MatchEngine and writes back what changed. The ledger rows
are the only thing that matters; scores, cards and results are derived.
"""
import logging
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from app.config import settings
from app.engine.errors import (
    InningsNotFoundError,
    InvalidDeliveryError,
    MatchNotFoundError,
    MatchStateError,
    StandingsAlreadyAppliedError,
    TournamentNotFoundError,
)
from app.engine.match_engine import MatchEngine
from app.engine.profile import MatchProfile, get_profile
from app.engine.result import MatchResult
from app.engine.standings import PointsTable, StandingsUpdater, TournamentTeamStanding
from app.engine.state import (
    TERMINAL_STATES,
    CompletionReason,
    Delivery,
    DeliveryInput,
    DeliveryOutcome,
    InningsCompleted,
    InningsState,
    MatchState,
)
from app.engine.statistics import InningsStatistics, StatisticsEngine
from app.models.match import DeliveryRecord, Innings, Match
from app.models.tournament import StandingsApplication, TeamStanding, Tournament

logger = logging.getLogger(__name__)


class ScoringService:
    """Ball-by-ball scoring over a SQLAlchemy session"""

    def __init__(self, session: Session):
        self.session = session
        self.statistics = StatisticsEngine()
        self.updater = StandingsUpdater()

    # Matches

    def create_match(
        self,
        team_a: str,
        team_b: str,
        profile: Union[MatchProfile, str, None] = None,
        venue: Optional[str] = None,
        tournament_id: Optional[int] = None,
    ) -> Match:
        """Create a scheduled match. profile is a MatchProfile or a preset name."""
        if profile is None:
            profile = settings.DEFAULT_PROFILE
        if isinstance(profile, str):
            profile = get_profile(profile)
        if not team_a or not team_b or team_a == team_b:
            raise ValueError("A match needs two different sides")
        if tournament_id is not None:
            self._get_tournament(tournament_id)

        match = Match(
            team_a=team_a,
            team_b=team_b,
            venue=venue,
            tournament_id=tournament_id,
            state=MatchState.SCHEDULED,
        )
        match.profile = profile
        self.session.add(match)
        self.session.commit()
        logger.info("Match %s created: %s vs %s (%s)", match.id, team_a, team_b, profile.name)
        return match

    def record_toss(self, match_id: int, winner: str, decision) -> MatchEngine:
        match, engine = self._load(match_id)
        engine.record_toss(winner, decision)
        match.toss_winner = engine.toss_winner
        match.toss_decision = engine.toss_decision
        self._sync(match, engine)
        return engine

    def start_innings(self, match_id: int, target: Optional[int] = None) -> InningsState:
        """Open the next innings; target revises the second innings' chase"""
        match, engine = self._load(match_id)
        innings = engine.start_innings(target)
        self.session.add(Innings(
            match=match,
            innings_number=innings.innings_number,
            batting_side=innings.batting_side,
            bowling_side=innings.bowling_side,
            target=innings.target,
            target_revised=innings.target_revised,
        ))
        self._sync(match, engine)
        if innings.target_revised:
            logger.info("Match %s: %s chase a revised target of %d", match_id, innings.batting_side, innings.target)
        return innings

    def revise_target(self, match_id: int, target: int) -> InningsState:
        """Revise the live second-innings target (DLS)"""
        match, engine = self._load(match_id)
        innings = engine.revise_target(target)
        innings_row = self._get_innings_row(match, innings.innings_number)
        innings_row.target = innings.target
        innings_row.target_revised = True
        self._sync(match, engine)
        logger.info("Match %s: target revised to %d", match_id, target)
        return innings

    def apply_delivery(self, match_id: int, innings_number: int, delivery: DeliveryInput) -> DeliveryOutcome:
        """
        Validate and record one delivery. A rejected delivery raises
        InvalidDeliveryError and leaves the stored ledger untouched.
        """
        match, engine = self._load(match_id)
        try:
            outcome = engine.apply_delivery(innings_number, delivery)
        except InvalidDeliveryError as e:
            logger.info(
                "Rejected delivery for match %s innings %d: %s (%s)",
                match_id, innings_number, e.reason, e.message,
            )
            raise

        innings_row = self._get_innings_row(match, innings_number)
        self.session.add(DeliveryRecord.from_delivery(match.id, innings_row, outcome.delivery))
        self._sync(match, engine)
        if outcome.boundary_event is not None:
            self._log_boundary(outcome.boundary_event, engine)
        return outcome

    def undo_last_delivery(self, match_id: int, innings_number: int) -> Optional[Delivery]:
        """
        Void the latest live delivery. The row stays in the table, flagged
        is_voided. On an innings closed by hand, undo takes back the close
        instead and returns None.
        """
        match, engine = self._load(match_id)
        if self._applied_to_standings(match.id):
            raise MatchStateError(f"Match {match_id} is already in the standings")

        voided = engine.undo_last_delivery(innings_number)
        innings_row = self._get_innings_row(match, innings_number)
        if voided is None:
            innings_row.closed_reason = None
            match.winner = None
            match.result_summary = None
            self._sync(match, engine)
            logger.info("Match %s: reopened innings %d", match_id, innings_number)
            return None

        record = next(
            r for r in reversed(innings_row.deliveries)
            if r.sequence == voided.sequence and not r.is_voided
        )
        record.is_voided = True
        innings_row.closed_reason = None
        match.winner = None
        match.result_summary = None
        self._sync(match, engine)
        logger.info(
            "Match %s: voided delivery %d of innings %d", match_id, voided.sequence, innings_number
        )
        return voided

    def close_innings(
        self, match_id: int, innings_number: int, reason: CompletionReason = CompletionReason.CLOSED
    ) -> InningsCompleted:
        """End an innings by hand (declaration, rain, scorer's end-innings button)"""
        match, engine = self._load(match_id)
        event = engine.close_innings(innings_number, reason)
        self._get_innings_row(match, innings_number).closed_reason = event.reason
        self._sync(match, engine)
        self._log_boundary(event, engine)
        return event

    def abandon_match(self, match_id: int, no_result: bool = False) -> MatchResult:
        match, engine = self._load(match_id)
        result = engine.abandon(no_result=no_result)
        self._sync(match, engine)
        logger.info("Match %s ended without a result (%s)", match_id, engine.state.value)
        return result

    def get_match(self, match_id: int) -> Match:
        return self._get_match(match_id)

    def get_match_state(self, match_id: int) -> dict:
        _, engine = self._load(match_id)
        return engine.to_dict()

    def get_statistics(self, match_id: int, innings_number: int, upto: Optional[int] = None) -> InningsStatistics:
        """
        Scorecards for one innings, recomputed from the ledger.
        upto limits the replay to the first N deliveries.
        """
        if upto is not None and upto < 0:
            raise ValueError("upto cannot be negative")
        match = self._get_match(match_id)
        innings_row = self._get_innings_row(match, innings_number)
        return self.statistics.compute(
            innings_row.ledger(), match.profile, target=innings_row.target, upto=upto
        )

    def resolve_match(self, match_id: int) -> MatchResult:
        """Result of a finished match. Raises IncompleteMatchError while play is on."""
        match, engine = self._load(match_id)
        result = engine.result or engine.resolver.resolve(engine)
        match.winner = result.winner
        match.result_summary = result.summary
        self.session.commit()
        return result

    # Tournaments

    def create_tournament(
        self, name: str, points: Optional[PointsTable] = None, teams: Optional[List[str]] = None
    ) -> Tournament:
        if points is None:
            points = PointsTable(
                win=settings.POINTS_WIN,
                tie=settings.POINTS_TIE,
                loss=settings.POINTS_LOSS,
                no_result=settings.POINTS_NO_RESULT,
            )
        tournament = Tournament(
            name=name,
            points_win=points.win,
            points_tie=points.tie,
            points_loss=points.loss,
            points_no_result=points.no_result,
        )
        self.session.add(tournament)
        for team_id in dict.fromkeys(teams or []):
            self.session.add(TeamStanding(tournament=tournament, team_id=team_id))
        self.session.commit()
        logger.info("Tournament %s created: %s", tournament.id, name)
        return tournament

    def update_standings(
        self, tournament_id: int, result: MatchResult
    ) -> Tuple[TournamentTeamStanding, TournamentTeamStanding]:
        """
        Apply a match result to the points table. Only a finished match of
        this tournament counts, and only once.
        """
        tournament = self._get_tournament(tournament_id)
        match = self._get_match(result.match_id)
        if match.tournament_id != tournament.id:
            raise MatchStateError(f"Match {match.id} is not part of tournament {tournament.id}")
        if match.state not in TERMINAL_STATES:
            raise MatchStateError(f"Match {match.id} is {match.state.value}, not finished")
        applied = {
            row.match_id
            for row in self.session.query(StandingsApplication).filter_by(tournament_id=tournament.id).all()
        }
        if result.match_id in applied:
            raise StandingsAlreadyAppliedError(result.match_id, result.team_a)

        rows = [self._get_or_create_standing(tournament, team) for team in (result.team_a, result.team_b)]
        updated = self.updater.apply(
            rows[0].to_standing(applied),
            rows[1].to_standing(applied),
            result,
            tournament.points_table,
        )
        for row, standing in zip(rows, updated):
            row.update_from(standing)
        self.session.add(StandingsApplication(tournament_id=tournament.id, match_id=result.match_id))
        self.session.commit()
        logger.info("Tournament %s: applied match %s (%s)", tournament.id, match.id, result.summary)
        return updated

    def get_standings(self, tournament_id: int) -> List[TournamentTeamStanding]:
        """Points table sorted by points, then NRR"""
        tournament = self._get_tournament(tournament_id)
        return self.updater.rank([row.to_standing() for row in tournament.standings])

    # Helpers

    def _get_match(self, match_id: int) -> Match:
        match = self.session.get(Match, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    def _get_tournament(self, tournament_id: int) -> Tournament:
        tournament = self.session.get(Tournament, tournament_id)
        if tournament is None:
            raise TournamentNotFoundError(tournament_id)
        return tournament

    def _get_innings_row(self, match: Match, innings_number: int) -> Innings:
        for innings in match.innings:
            if innings.innings_number == innings_number:
                return innings
        raise InningsNotFoundError(match.id, innings_number)

    def _get_or_create_standing(self, tournament: Tournament, team_id: str) -> TeamStanding:
        row = (
            self.session.query(TeamStanding)
            .filter_by(tournament_id=tournament.id, team_id=team_id)
            .first()
        )
        if row is None:
            row = TeamStanding(tournament=tournament, team_id=team_id)
            self.session.add(row)
        return row

    def _applied_to_standings(self, match_id: int) -> bool:
        return (
            self.session.query(StandingsApplication).filter_by(match_id=match_id).first()
            is not None
        )

    def _load(self, match_id: int) -> Tuple[Match, MatchEngine]:
        """Rebuild the match engine from the stored toss and ledger"""
        match = self._get_match(match_id)
        engine = MatchEngine(match.id, match.profile, match.team_a, match.team_b)
        if match.toss_winner is not None:
            engine.record_toss(match.toss_winner, match.toss_decision)
        for innings in match.innings:
            engine.replay_innings(
                innings.innings_number,
                innings.ledger(),
                innings.closed_reason,
                innings.target if innings.target_revised else None,
            )
        if match.state in (MatchState.ABANDONED, MatchState.NO_RESULT):
            engine.abandon(no_result=match.state == MatchState.NO_RESULT)
        logger.debug("Match %s rebuilt in state %s", match.id, engine.state.value)
        return match, engine

    def _sync(self, match: Match, engine: MatchEngine) -> None:
        match.state = engine.state
        if engine.result is not None:
            match.winner = engine.result.winner
            match.result_summary = engine.result.summary
        self.session.commit()

    def _log_boundary(self, event: InningsCompleted, engine: MatchEngine) -> None:
        if engine.result is not None:
            logger.info("Match %s result: %s", engine.match_id, engine.result.summary)
        elif event.innings_number == 1:
            logger.info(
                "Match %s: innings break, %s need %d",
                engine.match_id, engine.innings[0].bowling_side, event.runs + 1,
            )
