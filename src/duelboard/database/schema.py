"""Table definitions for the rating store."""

from __future__ import annotations

import ibis

SUBMISSIONS_TABLE = "submissions"
VOTES_TABLE = "votes"
VOTE_ID_SEQUENCE = "vote_id_seq"

SUBMISSIONS_SCHEMA = ibis.schema(
    {
        "submission_id": "string",
        "owner_id": "string",
        "category_id": "string",
        "title": "string",
        "rating": "float64",
        "qualification": "string",  # QualificationState value
        "created_at": "timestamp",
    }
)

# The ledger. Duplicate prevention is an existence check inside the recording
# transaction, not a uniqueness constraint.
VOTES_SCHEMA = ibis.schema(
    {
        "vote_id": "int64",
        "voter_id": "string",
        "winner_id": "string",
        "loser_id": "string",
        "created_at": "timestamp",
    }
)

SUBMISSION_COLUMNS = tuple(SUBMISSIONS_SCHEMA.names)
VOTE_COLUMNS = tuple(VOTES_SCHEMA.names)
