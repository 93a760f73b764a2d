from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class Scan(BaseModel):
    """
    One completed accessibility audit run.

    Written once, after every planned page has been audited, and never
    updated afterwards; a re-audit creates a new row. Severity counts are
    per affected DOM node. The compliance score is not stored, it is
    recomputed from the counts on every read.
    """
    __tablename__ = "scans"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    url = Column(String(2048), nullable=False)
    scan_type = Column(String(20), nullable=False, default="single-page")
    status = Column(String(20), nullable=False, default="completed")

    # Node-level counts (denormalized from violations)
    total_violations = Column(Integer, default=0, nullable=False)
    critical_count = Column(Integer, default=0, nullable=False)
    serious_count = Column(Integer, default=0, nullable=False)
    moderate_count = Column(Integer, default=0, nullable=False)
    minor_count = Column(Integer, default=0, nullable=False)
    unknown_count = Column(Integer, default=0, nullable=False)

    pages_scanned = Column(Integer, default=0, nullable=False)
    scan_duration = Column(Integer, nullable=False)  # milliseconds

    user = relationship("User", back_populates="scans")
    violations = relationship(
        "Violation",
        back_populates="scan",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint(
            'total_violations = critical_count + serious_count + moderate_count + minor_count + unknown_count',
            name='check_total_matches_severity_counts'
        ),
        Index('idx_scans_user_created', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Scan(id={self.id}, url={self.url}, total_violations={self.total_violations})>"
