"""
Scan Schemas

Request and response models for the scan API endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.features.scan.services.crawl.crawl_planner import ScanMode


# ============================================================================
# Running a scan
# ============================================================================

class ScanStartRequest(BaseModel):
    """Request to audit a URL."""
    url: str
    scan_type: ScanMode = Field(
        default=ScanMode.single_page,
        validation_alias=AliasChoices("scan_type", "scanType"),
    )
    max_pages: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("max_pages", "maxPages"),
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://example.com",
                "scan_type": "multi-page",
                "max_pages": 5
            }
        }
    )


class ScanSummary(BaseModel):
    """Node-level violation totals for one scan."""
    total_violations: int
    critical: int
    serious: int
    moderate: int
    minor: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScanStartResponse(BaseModel):
    """Result of a completed scan, as returned to API callers."""
    scan_id: str
    summary: ScanSummary
    pages_audited: int
    duration_ms: int

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "scanId": "019ac123-4567-89ab-cdef-0123456789ab",
                "summary": {
                    "totalViolations": 3,
                    "critical": 2,
                    "serious": 1,
                    "moderate": 0,
                    "minor": 0
                },
                "pagesAudited": 1,
                "durationMs": 4210
            }
        },
    )


class ScanQueuedResponse(BaseModel):
    task_id: str
    status: str


class ScanTaskStatusResponse(BaseModel):
    task_id: str
    state: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


# ============================================================================
# Reading scans back
# ============================================================================

class ViolationResponse(BaseModel):
    """One violation occurrence (one rule on one node)."""
    id: str
    violation_id: str
    description: str
    impact: str
    help: str
    help_url: Optional[str] = None
    page_url: str
    selector: str
    html: str
    target: List[str]
    failure_summary: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ScanHistoryItem(BaseModel):
    id: str
    url: str
    scan_type: str
    status: str
    total_violations: int
    critical_count: int
    serious_count: int
    moderate_count: int
    minor_count: int
    pages_scanned: int
    compliance_score: int
    created_at: datetime


class ScanDetailResponse(ScanHistoryItem):
    unknown_count: int
    scan_duration: int
    violations: List[ViolationResponse]


class RecentScan(BaseModel):
    id: str
    url: str
    score: int
    date: datetime
    violations: int


class DashboardStats(BaseModel):
    total_scans: int
    total_issues: int
    average_score: int
    recent_scans: List[RecentScan]
