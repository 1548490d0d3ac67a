from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from enum import Enum
from reputation_monitor.core.database import Base


class RiskLevel(str, Enum):
    """Per-review risk tag, derived from the star rating at import time."""
    HIGH_RISK = "HIGH_RISK"
    MEDIUM_RISK = "MEDIUM_RISK"
    LOW_RISK = "LOW_RISK"


class Review(Base):
    """
    A single review of an imported business.

    risk_level is written once by the importer from the rating and never
    recomputed; build rows through services.risk.build_review so the tag
    always matches the rating.
    """

    __tablename__ = "reviews"

    # Yelp review_id
    id = Column(String(64), primary_key=True, index=True)
    business_id = Column(
        String(64),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rating = Column(Integer, nullable=False, index=True)  # 1..5 stars
    text = Column(Text, nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)  # authored at, naive UTC
    risk_level = Column(SQLEnum(RiskLevel), nullable=False, index=True)

    business = relationship("Business", back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("idx_reviews_business_date", "business_id", "date"),
        Index("idx_reviews_risk_date", "risk_level", "date"),
    )

    def __repr__(self):
        return f"<Review(id={self.id}, business_id={self.business_id}, rating={self.rating}, risk_level={self.risk_level})>"
