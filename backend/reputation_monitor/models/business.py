from sqlalchemy import Column, Integer, String, Numeric, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from reputation_monitor.core.database import Base


class Business(Base):
    """Business imported from the Yelp academic dataset."""

    __tablename__ = "businesses"

    # Yelp business_id, stable across imports
    id = Column(String(64), primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(10), nullable=False, index=True)
    categories = Column(JSON, nullable=False, default=list)  # ordered list of strings

    # Source-provided aggregates (not recomputed from stored reviews)
    stars = Column(Numeric(2, 1))
    review_count = Column(Integer, nullable=False, default=0, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    reviews = relationship(
        "Review",
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name}, city={self.city}, state={self.state})>"
