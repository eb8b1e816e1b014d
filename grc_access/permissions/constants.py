"""
GRC Access Permissions - Constants
==================================
"""

ACTION_ALL = "all"
RESOURCE_ADMIN = "admin"

# Standard actions used by the seeded role catalogue. Custom roles may
# name any other action string.
ACTION_READ = "read"
ACTION_WRITE = "write"
ACTION_APPROVE = "approve"
ACTION_EXPORT = "export"

RESOURCE_RISKS = "risks"
RESOURCE_COMPLIANCE = "compliance"
RESOURCE_INCIDENTS = "incidents"
RESOURCE_ASSETS = "assets"
RESOURCE_REPORTS = "reports"
RESOURCE_USERS = "users"
RESOURCE_AUDIT = "audit"

DECISION_EXACT = "EXACT"
DECISION_RESOURCE_ALL = "RESOURCE_ALL"
DECISION_SUPER_ADMIN = "SUPER_ADMIN"
DECISION_NOT_GRANTED = "NOT_GRANTED"
DECISION_ERROR = "ERROR"
