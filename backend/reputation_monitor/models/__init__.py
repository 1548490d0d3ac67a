from reputation_monitor.models.business import Business
from reputation_monitor.models.review import Review, RiskLevel

__all__ = ["Business", "Review", "RiskLevel"]
