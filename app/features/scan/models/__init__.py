"""
Scan models package.
"""
from app.features.auth.models.user import User
from app.features.scan.models.scan import Scan
from app.features.scan.models.violation import Violation

__all__ = ["Scan", "User", "Violation"]
