from dataclasses import dataclass
from itertools import product
from typing import Dict, List, Tuple

import numpy as np
from scipy.spatial import KDTree

from obstacles_depth.config import ClusterConfig
from obstacles_depth.errors import ClusteringError
from obstacles_depth.models import Obstacle

# A voxel's diagonal equals the radius, so points two voxels apart per axis
# can still be neighbours but three apart cannot
_VOXEL_REACH = 2
_NEIGHBOUR_OFFSETS = [
    offset
    for offset in product(range(-_VOXEL_REACH, _VOXEL_REACH + 1), repeat=3)
    if offset > (0, 0, 0)
]
# Below this many point pairs a direct distance check beats building a tree
_BRUTE_FORCE_PAIRS = 4096


@dataclass
class ClusterResult:
    labels: np.ndarray
    num_clusters: int
    cluster_sizes: List[int]
    noise_count: int


def _voxel_grid(xyz: np.ndarray, voxel_size: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Hash points into cubic voxels.

    Returns the sorted voxel hashes, the voxel of every point and the hash
    stride per axis. Indices are padded by the reach on both sides so that
    neighbour hashes never alias another voxel.
    """
    voxel_indices = np.floor(xyz / voxel_size).astype(np.int64)

    min_indices = voxel_indices.min(axis=0)
    shifted_indices = voxel_indices - min_indices + _VOXEL_REACH

    max_dim = shifted_indices.max(axis=0) + 1 + _VOXEL_REACH
    if int(max_dim[0]) * int(max_dim[1]) * int(max_dim[2]) >= 2 ** 63:
        raise ClusteringError(
            f"Point extent is too large for a neighbour radius of {voxel_size * np.sqrt(3.0):g}"
        )

    strides = np.array([max_dim[1] * max_dim[2], max_dim[2], 1], dtype=np.int64)
    voxel_hash = shifted_indices @ strides

    unique_hashes, inverse_indices = np.unique(voxel_hash, return_inverse=True)
    return unique_hashes, inverse_indices.reshape(-1), strides


def _candidate_pairs(unique_hashes: np.ndarray, strides: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Pairs of occupied voxels close enough to hold neighbouring points."""
    firsts, seconds = [], []
    for offset in _NEIGHBOUR_OFFSETS:
        target = unique_hashes + np.dot(offset, strides)
        pos = np.searchsorted(unique_hashes, target)
        pos = np.minimum(pos, len(unique_hashes) - 1)
        found = unique_hashes[pos] == target
        firsts.append(np.nonzero(found)[0])
        seconds.append(pos[found])
    return np.concatenate(firsts), np.concatenate(seconds)


def _voxels_touch(
    xyz: np.ndarray,
    members: List[np.ndarray],
    trees: Dict[int, KDTree],
    a: int,
    b: int,
    radius: float,
) -> bool:
    if len(members[a]) > len(members[b]):
        a, b = b, a
    pa = xyz[members[a]]
    pb = xyz[members[b]]

    if len(pa) * len(pb) <= _BRUTE_FORCE_PAIRS:
        diff = pa[:, None, :] - pb[None, :, :]
        return bool((np.sum(diff * diff, axis=2) <= radius * radius).any())

    tree = trees.get(b)
    if tree is None:
        tree = trees[b] = KDTree(pb)
    dist, _ = tree.query(pa, k=1)
    return bool(dist.min() <= radius)


def region_grow(
    points: np.ndarray,
    radius: float,
    strictness: float = 1.0,
    min_cluster_size: int = 1,
) -> ClusterResult:
    """
    Connected-component clustering over the radius neighbour graph.

    Two points are neighbours when they are at most radius * strictness
    apart. Points are bucketed into voxels whose diagonal is that distance,
    so every voxel is connected internally and only pairs of nearby voxels
    need a distance check. Cluster ids follow the position of each cluster's
    first point. Clusters below min_cluster_size become noise (-1) and the
    survivors are renumbered without gaps.
    """
    if radius <= 0:
        raise ClusteringError(f"Clustering radius must be > 0, got {radius}")
    if not 0.0 < strictness <= 1.0:
        raise ClusteringError(f"Clustering strictness must be in (0, 1], got {strictness}")
    if min_cluster_size < 1:
        raise ClusteringError(f"Minimum cluster size must be >= 1, got {min_cluster_size}")

    if len(points) == 0:
        return ClusterResult(
            labels=np.array([], dtype=int),
            num_clusters=0,
            cluster_sizes=[],
            noise_count=0,
        )

    xyz = np.asarray(points[:, :3], dtype=np.float64)
    effective_radius = radius * strictness

    unique_hashes, voxel_of_point, strides = _voxel_grid(xyz, effective_radius / np.sqrt(3.0))
    num_voxels = len(unique_hashes)

    order = np.argsort(voxel_of_point, kind="stable")
    bounds = np.cumsum(np.bincount(voxel_of_point, minlength=num_voxels))[:-1]
    members = np.split(order, bounds)

    # Union-find over voxels, skipping pairs that are already joined
    parent = list(range(num_voxels))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    trees: Dict[int, KDTree] = {}
    firsts, seconds = _candidate_pairs(unique_hashes, strides)
    for a, b in zip(firsts.tolist(), seconds.tolist()):
        ra, rb = find(a), find(b)
        if ra == rb:
            continue
        if _voxels_touch(xyz, members, trees, a, b, effective_radius):
            parent[max(ra, rb)] = min(ra, rb)

    roots = np.array([find(i) for i in range(num_voxels)], dtype=np.int64)
    components = roots[voxel_of_point]

    # Number components by their first point
    _, first_index, component_of_point = np.unique(components, return_index=True, return_inverse=True)
    discovery_rank = np.empty(len(first_index), dtype=int)
    discovery_rank[np.argsort(first_index, kind="stable")] = np.arange(len(first_index))
    labels = discovery_rank[component_of_point.reshape(-1)]
    cluster_id = len(first_index)

    sizes = np.bincount(labels, minlength=cluster_id)
    keep = sizes >= min_cluster_size

    # Surviving ids keep their discovery order
    remap = np.full(cluster_id, -1, dtype=int)
    remap[keep] = np.arange(int(keep.sum()))
    labels = remap[labels]

    num_clusters = int(keep.sum())
    cluster_sizes = [int(s) for s in sizes[keep]]
    noise_count = int((labels == -1).sum())

    return ClusterResult(
        labels=labels,
        num_clusters=num_clusters,
        cluster_sizes=cluster_sizes,
        noise_count=noise_count,
    )


def extract_obstacles(points: np.ndarray, result: ClusterResult) -> List[Obstacle]:
    """One obstacle per surviving cluster, in cluster id order."""
    if result.num_clusters == 0:
        return []

    clustered = result.labels >= 0
    # Stable sort keeps each cluster's points in input order
    order = np.argsort(result.labels[clustered], kind="stable")
    grouped = points[clustered][order]
    bounds = np.cumsum(result.cluster_sizes)[:-1]

    return [
        Obstacle.from_points(cluster_points, cluster_id=cid)
        for cid, cluster_points in enumerate(np.split(grouped, bounds))
    ]


def cluster_obstacles(points: np.ndarray, config: ClusterConfig) -> List[Obstacle]:
    """Cluster non-ground points and turn each cluster into an obstacle."""
    result = region_grow(
        points,
        radius=config.clustering_radius,
        strictness=config.clustering_strictness,
        min_cluster_size=config.min_pts_in_segment,
    )
    return extract_obstacles(points, result)
