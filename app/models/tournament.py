"""
Tournament and points-table models
"""
from typing import List
from sqlalchemy import String, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime

from app.database import Base
from app.engine.standings import PointsTable, TournamentTeamStanding


class Tournament(Base):
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Points per outcome
    points_win: Mapped[int] = mapped_column(Integer, default=2)
    points_tie: Mapped[int] = mapped_column(Integer, default=1)
    points_loss: Mapped[int] = mapped_column(Integer, default=0)
    points_no_result: Mapped[int] = mapped_column(Integer, default=0)

    standings: Mapped[List["TeamStanding"]] = relationship("TeamStanding", back_populates="tournament")

    @property
    def points_table(self) -> PointsTable:
        return PointsTable(
            win=self.points_win,
            tie=self.points_tie,
            loss=self.points_loss,
            no_result=self.points_no_result,
        )

    def __repr__(self):
        return f"<Tournament '{self.name}'>"


class TeamStanding(Base):
    """
    A team's row in a tournament's points table.
    NRR components are kept so the rate can be recomputed from totals.
    """
    __tablename__ = "team_standings"
    __table_args__ = (UniqueConstraint("tournament_id", "team_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"))
    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="standings")
    team_id: Mapped[str] = mapped_column(String(100))

    # League standings
    matches_played: Mapped[int] = mapped_column(Integer, default=0)
    wins: Mapped[int] = mapped_column(Integer, default=0)
    losses: Mapped[int] = mapped_column(Integer, default=0)
    ties: Mapped[int] = mapped_column(Integer, default=0)
    no_results: Mapped[int] = mapped_column(Integer, default=0)
    points: Mapped[int] = mapped_column(Integer, default=0)

    # Net Run Rate components
    runs_scored: Mapped[int] = mapped_column(Integer, default=0)
    overs_faced: Mapped[float] = mapped_column(default=0.0)
    runs_conceded: Mapped[int] = mapped_column(Integer, default=0)
    overs_bowled: Mapped[float] = mapped_column(default=0.0)
    net_run_rate: Mapped[float] = mapped_column(default=0.0)

    def to_standing(self, applied_matches=frozenset()) -> TournamentTeamStanding:
        return TournamentTeamStanding(
            team_id=self.team_id,
            matches_played=self.matches_played or 0,
            won=self.wins or 0,
            lost=self.losses or 0,
            tied=self.ties or 0,
            no_result=self.no_results or 0,
            points=self.points or 0,
            runs_scored=self.runs_scored or 0,
            overs_faced=self.overs_faced or 0.0,
            runs_conceded=self.runs_conceded or 0,
            overs_bowled=self.overs_bowled or 0.0,
            nrr=self.net_run_rate or 0.0,
            applied_matches=frozenset(applied_matches),
        )

    def update_from(self, standing: TournamentTeamStanding) -> None:
        self.matches_played = standing.matches_played
        self.wins = standing.won
        self.losses = standing.lost
        self.ties = standing.tied
        self.no_results = standing.no_result
        self.points = standing.points
        self.runs_scored = standing.runs_scored
        self.overs_faced = standing.overs_faced
        self.runs_conceded = standing.runs_conceded
        self.overs_bowled = standing.overs_bowled
        self.net_run_rate = standing.nrr

    def __repr__(self):
        return f"<TeamStanding {self.team_id}: {self.wins}W {self.losses}L, NRR: {self.net_run_rate:+.3f}>"


class StandingsApplication(Base):
    """Marks a match as applied to a tournament's standings; at most once"""
    __tablename__ = "standings_applications"
    __table_args__ = (UniqueConstraint("tournament_id", "match_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"))
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"))
    applied_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
