"""Artifact storage and data model"""

from .artifact_store import ArtifactLocation, ArtifactStore, subject_slug
from .identifiers import new_call_id, new_execution_id

__all__ = [
    "ArtifactLocation",
    "ArtifactStore",
    "subject_slug",
    "new_call_id",
    "new_execution_id",
]
