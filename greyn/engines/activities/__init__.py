"""
Eco activity submission and review.
"""

from greyn.engines.activities.activity_service import (
    ActivityService,
    ProofImage,
    activity_to_dict,
    activity_types,
    validate_proof_image,
)

__all__ = ["ActivityService", "ProofImage", "activity_to_dict", "activity_types", "validate_proof_image"]
