from app.engine.processor import DeliveryProcessor
from app.engine.statistics import StatisticsEngine
from app.engine.result import MatchResultResolver
from app.engine.standings import StandingsUpdater
from app.engine.match_engine import MatchEngine

__all__ = ["DeliveryProcessor", "StatisticsEngine", "MatchResultResolver", "StandingsUpdater", "MatchEngine"]
