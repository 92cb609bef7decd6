"""Enrichment library — action taxonomy and request context parsing.

Public API:
    - AuditAction / AuditCategory / RiskLevel: Enumerations
    - categorize: Static action -> category lookup
    - assess_risk: Pure (action, success) -> risk level mapping
    - validate_taxonomy: Startup check that every action is mapped
    - parse_user_agent / DeviceInfo: Heuristic user-agent parsing
"""

from audit_trail.lib.enrichment.taxonomy import (
    ACTION_CATEGORIES,
    AuditAction,
    AuditCategory,
    RiskLevel,
    TaxonomyError,
    assess_risk,
    categorize,
    validate_taxonomy,
)
from audit_trail.lib.enrichment.user_agent import UNKNOWN, DeviceInfo, parse_user_agent

__all__ = [
    "ACTION_CATEGORIES",
    "UNKNOWN",
    "AuditAction",
    "AuditCategory",
    "DeviceInfo",
    "RiskLevel",
    "TaxonomyError",
    "assess_risk",
    "categorize",
    "parse_user_agent",
    "validate_taxonomy",
]
