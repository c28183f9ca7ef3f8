"""Prefixed identifiers for every stored record."""

import uuid

IDEA = "idea_"
REVIEW = "rev_"
STAGE_PROGRESS = "prog_"
PIPELINE = "pipe_"
STAGE = "stg_"
AUDIT = "aud_"
USER = "usr_"
SCORE = "score_"


def generate_id(prefix: str) -> str:
    """``prefix`` plus 16 hex characters, e.g. ``idea_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"
