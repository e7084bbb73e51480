"""Business logic services for the engagement engine."""

from .bot_classifier import BotClassifier
from .likes import LikeToggle
from .moderation import ModerationService
from .pricing import PricingService
from .revenue import RevenueService, calculate_revenue
from .view_ledger import LedgerMaintenanceWorker, ViewLedger

__all__ = [
    "BotClassifier",
    "LikeToggle",
    "ModerationService",
    "PricingService",
    "RevenueService",
    "calculate_revenue",
    "ViewLedger",
    "LedgerMaintenanceWorker",
]
