from app.models.match import Match, Innings, DeliveryRecord
from app.models.tournament import Tournament, TeamStanding, StandingsApplication

__all__ = [
    "Match",
    "Innings",
    "DeliveryRecord",
    "Tournament",
    "TeamStanding",
    "StandingsApplication",
]
