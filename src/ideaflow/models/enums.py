"""String enums shared by the ORM, the API models and the workflow engine."""

from enum import StrEnum


class IdeaStatus(StrEnum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ReviewAction(StrEnum):
    SUBMIT = "SUBMIT"
    START_REVIEW = "START_REVIEW"
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    ABANDON = "ABANDON"


class UserRole(StrEnum):
    SUBMITTER = "SUBMITTER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


class Visibility(StrEnum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class ReviewDecision(StrEnum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class StageOutcome(StrEnum):
    PASS = "PASS"
    ESCALATE = "ESCALATE"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class EscalationAction(StrEnum):
    PASS = "PASS"
    REJECT = "REJECT"


class ScoringCriterion(StrEnum):
    TECHNICAL_FEASIBILITY = "Technical Feasibility"
    STRATEGIC_ALIGNMENT = "Strategic Alignment"
    COST_EFFICIENCY = "Cost Efficiency"
    EMPLOYEE_IMPACT = "Employee Impact"
    INNOVATION_LEVEL = "Innovation Level"


class IdeaCategory(StrEnum):
    PROCESS_IMPROVEMENT = "process-improvement"
    NEW_PRODUCT_SERVICE = "new-product-service"
    COST_REDUCTION = "cost-reduction"
    EMPLOYEE_EXPERIENCE = "employee-experience"
    TECHNICAL_INNOVATION = "technical-innovation"


class AuditAction(StrEnum):
    IDEA_CREATED = "IDEA_CREATED"
    IDEA_REVIEW_STARTED = "IDEA_REVIEW_STARTED"
    IDEA_REVIEWED = "IDEA_REVIEWED"
    IDEA_REVIEW_ABANDONED = "IDEA_REVIEW_ABANDONED"
    IDEA_SCORED = "IDEA_SCORED"
    STAGE_STARTED = "STAGE_STARTED"
    STAGE_CLAIMED = "STAGE_CLAIMED"
    STAGE_COMPLETED = "STAGE_COMPLETED"
    ESCALATION_RESOLVED = "ESCALATION_RESOLVED"
    DRAFT_SAVED = "DRAFT_SAVED"
    DRAFT_SUBMITTED = "DRAFT_SUBMITTED"
    DRAFT_DELETED = "DRAFT_DELETED"
    PIPELINE_CREATED = "PIPELINE_CREATED"
    PIPELINE_UPDATED = "PIPELINE_UPDATED"
    PIPELINE_DELETED = "PIPELINE_DELETED"


REVIEWER_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPERADMIN})
NON_DECISION_OUTCOMES = frozenset({StageOutcome.PASS, StageOutcome.ESCALATE})
DECISION_OUTCOMES = frozenset({StageOutcome.ACCEPTED, StageOutcome.REJECTED})
