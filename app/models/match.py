from typing import Optional, List
from sqlalchemy import String, Integer, ForeignKey, Enum, DateTime, Text, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
import json

from app.database import Base
from app.engine.profile import MatchProfile
from app.engine.state import (
    CompletionReason,
    Delivery,
    ExtraType,
    MatchState,
    TossDecision,
    WicketType,
)


class Match(Base):
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Sides
    team_a: Mapped[str] = mapped_column(String(100))
    team_b: Mapped[str] = mapped_column(String(100))

    # Rules, stored as JSON so old matches keep the rules they were played under
    profile_json: Mapped[str] = mapped_column(Text)

    # Toss
    toss_winner: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    toss_decision: Mapped[Optional[TossDecision]] = mapped_column(Enum(TossDecision), nullable=True)

    # Match info
    venue: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    match_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    tournament_id: Mapped[Optional[int]] = mapped_column(ForeignKey("tournaments.id"), nullable=True)

    # Mirrors the engine; the ledger decides everything except abandonment
    state: Mapped[MatchState] = mapped_column(Enum(MatchState), default=MatchState.SCHEDULED)

    # Result
    winner: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    result_summary: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Relationships
    innings: Mapped[List["Innings"]] = relationship(
        "Innings", back_populates="match", order_by="Innings.innings_number"
    )

    @property
    def profile(self) -> MatchProfile:
        return MatchProfile.from_dict(json.loads(self.profile_json))

    @profile.setter
    def profile(self, profile: MatchProfile):
        self.profile_json = json.dumps(profile.to_dict())

    def __repr__(self):
        return f"<Match {self.team_a} vs {self.team_b}>"


class Innings(Base):
    __tablename__ = "innings"
    __table_args__ = (UniqueConstraint("match_id", "innings_number"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"))
    match: Mapped["Match"] = relationship("Match", back_populates="innings")

    innings_number: Mapped[int] = mapped_column(Integer)  # 1 or 2
    batting_side: Mapped[str] = mapped_column(String(100))
    bowling_side: Mapped[str] = mapped_column(String(100))

    # Target (for 2nd innings)
    target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_revised: Mapped[bool] = mapped_column(Boolean, default=False)

    # Set only when the scorer closed the innings by hand
    closed_reason: Mapped[Optional[CompletionReason]] = mapped_column(Enum(CompletionReason), nullable=True)

    # Ball by ball
    deliveries: Mapped[List["DeliveryRecord"]] = relationship(
        "DeliveryRecord", back_populates="innings", order_by="DeliveryRecord.sequence"
    )

    def ledger(self) -> List[Delivery]:
        """Live deliveries in recorded order; voided rows are skipped"""
        return [record.to_delivery() for record in self.deliveries if not record.is_voided]

    def __repr__(self):
        return f"<Innings {self.innings_number}: {self.batting_side}>"


class DeliveryRecord(Base):
    """One row per recorded ball. Rows are never deleted; undo sets is_voided."""
    __tablename__ = "delivery_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), index=True)
    innings_id: Mapped[int] = mapped_column(ForeignKey("innings.id"))
    innings: Mapped["Innings"] = relationship("Innings", back_populates="deliveries")
    innings_number: Mapped[int] = mapped_column(Integer)

    sequence: Mapped[int] = mapped_column(Integer)
    over_number: Mapped[int] = mapped_column(Integer)
    ball_number: Mapped[int] = mapped_column(Integer)  # legal-ball index in the over at record time

    # Players
    striker_id: Mapped[str] = mapped_column(String(100))
    non_striker_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bowler_id: Mapped[str] = mapped_column(String(100))

    # Outcome
    runs: Mapped[int] = mapped_column(Integer, default=0)  # off the bat
    extras: Mapped[int] = mapped_column(Integer, default=0)
    extra_type: Mapped[ExtraType] = mapped_column(Enum(ExtraType), default=ExtraType.NONE)
    is_wicket: Mapped[bool] = mapped_column(Boolean, default=False)
    wicket_type: Mapped[Optional[WicketType]] = mapped_column(Enum(WicketType), nullable=True)
    dismissed_batsman_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    fielder_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_free_hit: Mapped[bool] = mapped_column(Boolean, default=False)
    is_powerplay: Mapped[bool] = mapped_column(Boolean, default=False)
    is_boundary: Mapped[bool] = mapped_column(Boolean, default=False)
    is_voided: Mapped[bool] = mapped_column(Boolean, default=False)

    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @classmethod
    def from_delivery(cls, match_id: int, innings: "Innings", delivery: Delivery) -> "DeliveryRecord":
        return cls(
            match_id=match_id,
            innings=innings,
            innings_number=delivery.innings_number,
            sequence=delivery.sequence,
            over_number=delivery.over_number,
            ball_number=delivery.ball_in_over,
            striker_id=delivery.striker,
            non_striker_id=delivery.non_striker,
            bowler_id=delivery.bowler,
            runs=delivery.runs_off_bat,
            extras=delivery.extra_runs,
            extra_type=delivery.extra_type,
            is_wicket=delivery.is_wicket,
            wicket_type=delivery.wicket_type,
            dismissed_batsman_id=delivery.dismissed_batsman,
            fielder_id=delivery.fielder,
            is_free_hit=delivery.is_free_hit,
            is_powerplay=delivery.is_powerplay,
            is_boundary=delivery.is_boundary,
        )

    def to_delivery(self) -> Delivery:
        return Delivery(
            sequence=self.sequence,
            innings_number=self.innings_number,
            over_number=self.over_number,
            ball_in_over=self.ball_number,
            striker=self.striker_id,
            non_striker=self.non_striker_id,
            bowler=self.bowler_id,
            runs_off_bat=self.runs,
            extra_runs=self.extras,
            extra_type=self.extra_type,
            is_wicket=self.is_wicket,
            wicket_type=self.wicket_type,
            dismissed_batsman=self.dismissed_batsman_id,
            fielder=self.fielder_id,
            is_powerplay=self.is_powerplay,
            is_free_hit=self.is_free_hit,
            is_boundary=self.is_boundary,
        )

    def __repr__(self):
        return f"<DeliveryRecord {self.over_number}.{self.ball_number}: {self.runs}+{self.extras}>"
