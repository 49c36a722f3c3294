"""
Scoring engine errors
"""


class ScoringError(Exception):
    """Base class for everything the scoring core raises"""


class InvalidDeliveryError(ScoringError):
    """
    A delivery broke a rule (bowler rotation, free hit, malformed extras...).
    The caller can fix the input and resubmit; state is never touched.
    """

    def __init__(self, reason: str, message: str = ""):
        self.reason = reason
        self.message = message or reason.replace("_", " ")
        super().__init__(f"{reason}: {self.message}")


class MatchNotFoundError(ScoringError):
    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class InningsNotFoundError(ScoringError):
    def __init__(self, match_id, innings_number: int):
        self.match_id = match_id
        self.innings_number = innings_number
        super().__init__(f"Innings {innings_number} not found for match {match_id}")


class TournamentNotFoundError(ScoringError):
    def __init__(self, tournament_id):
        self.tournament_id = tournament_id
        super().__init__(f"Tournament {tournament_id} not found")


class IncompleteMatchError(ScoringError):
    """Result requested before both innings are completed"""


class MatchStateError(ScoringError):
    """Operation is not valid in the match's current state"""


class StandingsAlreadyAppliedError(ScoringError):
    def __init__(self, match_id, team_id):
        self.match_id = match_id
        self.team_id = team_id
        super().__init__(f"Match {match_id} already applied to standings of {team_id}")
