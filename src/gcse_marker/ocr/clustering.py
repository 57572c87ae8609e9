"""
Module: ocr.clustering

Purpose:
    Merges raw recognition fragments (from every pass) into spatial
    clusters. Density-based clustering over fragment centres groups
    nearby handwriting; a second pass merges clusters whose rectangles
    still overlap.

Key Classes:
    - BlockClusterer: Stateless clusterer configured by ClusteringConfig

Key Functions:
    - merge_overlapping(): Fixpoint merge of intersecting clusters

Dependencies:
    - numpy: Centre-point matrix
    - sklearn.cluster.DBSCAN: Density-based clustering

Used By:
    - ocr.orchestrator: Clusters pooled fragments
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Sequence

import numpy as np
from sklearn.cluster import DBSCAN

from gcse_marker.config import ClusteringConfig
from gcse_marker.core.models import Cluster, DetectedFragment

logger = logging.getLogger(__name__)

NOISE_LABEL = -1


def _reading_order(clusters: Sequence[Cluster]) -> List[Cluster]:
    ordered = sorted(clusters, key=lambda c: (c.bbox.min_y, c.bbox.min_x))
    return [c.reindexed(i) for i, c in enumerate(ordered, start=1)]


def merge_overlapping(clusters: Sequence[Cluster], max_iterations: int = 20) -> List[Cluster]:
    """
    Merge clusters whose boxes intersect until none do.

    Each iteration scans pairs and merges the first intersecting pair it
    finds into one cluster (union box, reading-order text), then rescans.
    Stops when a full scan merges nothing or max_iterations is reached.

    Args:
        clusters: Input clusters
        max_iterations: Cap on merge scans

    Returns:
        Clusters re-indexed 1..n in reading order
    """
    current = list(clusters)
    for iteration in range(max_iterations):
        merged_any = False
        result: List[Cluster] = []
        consumed = [False] * len(current)

        for i, cluster in enumerate(current):
            if consumed[i]:
                continue
            combined = cluster
            # Absorb every later cluster that intersects the growing box
            grew = True
            while grew:
                grew = False
                for j in range(i + 1, len(current)):
                    if consumed[j]:
                        continue
                    if combined.bbox.intersects(current[j].bbox):
                        combined = combined.merged_with(current[j])
                        consumed[j] = True
                        merged_any = True
                        grew = True
            result.append(combined)

        current = result
        if not merged_any:
            logger.debug(f"Overlap merge converged after {iteration + 1} scans")
            break
    else:
        logger.warning(
            f"Overlap merge hit iteration cap ({max_iterations}) with {len(current)} clusters"
        )

    return _reading_order(current)


class BlockClusterer:
    """
    Groups fragments into clusters.

    Stateless apart from its configuration; safe to share between
    submissions.

    Example:
        >>> clusterer = BlockClusterer(ClusteringConfig(eps_px=40, min_samples=2))
        >>> clusters = clusterer.cluster(fragments)
    """

    def __init__(self, config: ClusteringConfig | None = None):
        self.config = config or ClusteringConfig()

    def label_fragments(self, fragments: Sequence[DetectedFragment]) -> np.ndarray:
        """DBSCAN labels over fragment centres (-1 marks noise)."""
        centres = np.array([f.bbox.center for f in fragments], dtype=float)
        model = DBSCAN(eps=self.config.eps_px, min_samples=self.config.min_samples, metric="euclidean")
        return model.fit_predict(centres)

    def cluster(self, fragments: Sequence[DetectedFragment]) -> List[Cluster]:
        """
        Cluster fragments and merge overlapping results.

        Noise fragments are kept as singleton clusters so no text is lost.

        Args:
            fragments: Pooled fragments from every recognition pass

        Returns:
            Non-overlapping clusters indexed 1..n in reading order
        """
        usable = [f for f in fragments if f.text and f.text.strip()]
        if not usable:
            return []

        labels = self.label_fragments(usable)

        groups: Dict[int, List[DetectedFragment]] = defaultdict(list)
        singletons: List[List[DetectedFragment]] = []
        for fragment, label in zip(usable, labels):
            if int(label) == NOISE_LABEL:
                singletons.append([fragment])
            else:
                groups[int(label)].append(fragment)

        members = list(groups.values()) + singletons
        clusters = [Cluster.from_fragments(i, group) for i, group in enumerate(members, start=1)]

        logger.debug(
            f"DBSCAN produced {len(groups)} clusters and {len(singletons)} noise singletons "
            f"from {len(usable)} fragments"
        )
        return merge_overlapping(clusters, self.config.max_merge_iterations)
