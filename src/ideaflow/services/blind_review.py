"""Blind-review author masking.

The author's name is replaced with ``ANONYMOUS`` only while every one of
these holds: the feature flag is on, the idea's pipeline has blind review
enabled, the idea is UNDER_REVIEW, the viewer is not the author, and the
viewer is not a SUPERADMIN. Evaluate on every read; never store the result.
"""

from ideaflow.models.enums import IdeaStatus, UserRole

ANONYMOUS = "Anonymous"
UNKNOWN = "Unknown"


def mask_author_if_blind(
    author_id: str,
    author_display_name: str | None,
    requester_id: str,
    requester_role: UserRole | str,
    pipeline_blind_review: bool,
    idea_status: IdeaStatus | str,
    feature_flag_enabled: bool,
) -> str:
    should_mask = (
        feature_flag_enabled
        and pipeline_blind_review
        and idea_status == IdeaStatus.UNDER_REVIEW
        and requester_id != author_id
        and requester_role != UserRole.SUPERADMIN
    )
    if should_mask:
        return ANONYMOUS
    return author_display_name if author_display_name is not None else UNKNOWN
