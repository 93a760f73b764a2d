from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class Violation(BaseModel):
    """
    One rule failure on one DOM node.

    A rule that matches N nodes is stored as N rows sharing rule id,
    description and help text. `position` is the row's index in the
    scan's canonical order (page, rule, node) and breaks ties when rows
    are ranked by severity.
    """
    __tablename__ = "violations"

    scan_id = Column(String, ForeignKey("scans.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    # Rule
    violation_id = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    impact = Column(String(20), nullable=False, index=True)
    help = Column(Text, nullable=False, default="")
    help_url = Column(String(2048), nullable=True)

    # Node
    page_url = Column(String(2048), nullable=False)
    selector = Column(Text, nullable=False, default="")
    html = Column(Text, nullable=False, default="")
    target = Column(JSON, nullable=False, default=list)
    failure_summary = Column(Text, nullable=True)

    scan = relationship("Scan", back_populates="violations")

    __table_args__ = (
        Index('idx_violations_scan_position', 'scan_id', 'position'),
    )
