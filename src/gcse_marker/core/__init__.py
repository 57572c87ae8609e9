"""
Marking Pipeline Core Package

Shared data models and schema validation used by every stage.

**DESIGN RULES:**

1. **Immutable Value Models**
   - Boxes, fragments, clusters, schemes, detections and scores are frozen
   - Stages return new instances instead of editing shared ones

2. **Recomputed Scores (Never Trusted)**
   - `StudentScore` is only built by the result parser from the
     annotations and the resolved budget

3. **One Canonical Scheme**
   - Raw scheme records are resolved once into `NormalizedScheme`
"""

from .models import (
    BoundingBox,
    DetectedFragment,
    Cluster,
    MathBlock,
    NormalizedScheme,
    DetectionResult,
    Annotation,
    StudentScore,
    GradeResult,
)

__all__ = [
    "BoundingBox",
    "DetectedFragment",
    "Cluster",
    "MathBlock",
    "NormalizedScheme",
    "DetectionResult",
    "Annotation",
    "StudentScore",
    "GradeResult",
]
