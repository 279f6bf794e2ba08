"""Packed bounding-volume hierarchy built with Sort-Tile-Recursive bulk loading.

Boxes are rows of ``[min_lon, min_lat, max_lon, max_lat]``. Level 0 holds the
leaves; each leaf owns a contiguous slice of ``entry_order``. Every higher
level owns contiguous slices of the level below, so a node is fully described
by its box and one ``[start, stop)`` range.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

DEFAULT_NODE_CAPACITY = 16


@dataclass(frozen=True)
class _Level:
    boxes: np.ndarray
    ranges: np.ndarray


class BoundingVolumeHierarchy:
    """Immutable STR-packed tree over a fixed set of boxes."""

    def __init__(self, boxes: np.ndarray, node_capacity: int = DEFAULT_NODE_CAPACITY) -> None:
        if node_capacity < 2:
            raise ValueError("node_capacity must be at least 2")
        boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
        self._capacity = int(node_capacity)
        self._count = int(boxes.shape[0])
        self._levels: list[_Level] = []
        self._entry_order = np.zeros(0, dtype=np.int64)
        self._entry_boxes = np.zeros((0, 4), dtype=np.float64)
        if self._count:
            self._build(boxes)
        self._entry_order.setflags(write=False)
        self._entry_boxes.setflags(write=False)
        for level in self._levels:
            level.boxes.setflags(write=False)
            level.ranges.setflags(write=False)

    def __len__(self) -> int:
        return self._count

    @property
    def node_capacity(self) -> int:
        return self._capacity

    @property
    def depth(self) -> int:
        return len(self._levels)

    @property
    def node_count(self) -> int:
        return sum(int(level.boxes.shape[0]) for level in self._levels)

    @property
    def root_box(self) -> np.ndarray | None:
        if not self._levels:
            return None
        return self._levels[-1].boxes[0]

    def _build(self, boxes: np.ndarray) -> None:
        order = _str_order(boxes, self._capacity)
        self._entry_order = order
        self._entry_boxes = boxes[order]
        leaf_boxes, leaf_ranges = _pack(self._entry_boxes, self._capacity)
        self._levels.append(_Level(boxes=leaf_boxes, ranges=leaf_ranges))

        while self._levels[-1].boxes.shape[0] > 1:
            below = self._levels[-1]
            node_order = _str_order(below.boxes, self._capacity)
            # Children of one parent must be contiguous, so the level below is
            # rewritten in packing order before the parents are formed.
            below = _Level(boxes=below.boxes[node_order], ranges=below.ranges[node_order])
            self._levels[-1] = below
            parent_boxes, parent_ranges = _pack(below.boxes, self._capacity)
            self._levels.append(_Level(boxes=parent_boxes, ranges=parent_ranges))

    def query_point(self, lat: float, lon: float) -> list[int]:
        """Entry ids whose box contains the point, in ascending id order."""

        if not self._levels:
            return []
        hits: list[int] = []
        top = len(self._levels) - 1
        stack: list[tuple[int, int]] = [(top, 0)]
        while stack:
            level_idx, node_idx = stack.pop()
            level = self._levels[level_idx]
            box = level.boxes[node_idx]
            if not (box[0] <= lon <= box[2] and box[1] <= lat <= box[3]):
                continue
            start, stop = level.ranges[node_idx]
            if level_idx == 0:
                mask = _covers(self._entry_boxes[start:stop], lat, lon)
                hits.extend(int(i) for i in self._entry_order[start:stop][mask])
            else:
                mask = _covers(self._levels[level_idx - 1].boxes[start:stop], lat, lon)
                for offset in np.flatnonzero(mask):
                    stack.append((level_idx - 1, int(start + offset)))
        hits.sort()
        return hits


def _covers(boxes: np.ndarray, lat: float, lon: float) -> np.ndarray:
    return (boxes[:, 0] <= lon) & (lon <= boxes[:, 2]) & (boxes[:, 1] <= lat) & (lat <= boxes[:, 3])


def _str_order(boxes: np.ndarray, capacity: int) -> np.ndarray:
    """Sort-Tile-Recursive ordering: vertical slabs by x centre, then y within each slab."""

    count = boxes.shape[0]
    centres_x = (boxes[:, 0] + boxes[:, 2]) * 0.5
    centres_y = (boxes[:, 1] + boxes[:, 3]) * 0.5
    node_total = math.ceil(count / capacity)
    slab_count = max(1, math.ceil(math.sqrt(node_total)))
    slab_size = slab_count * capacity

    # Stable sorts keep equal centres in input order, so the tree is
    # reproducible for a given build.
    by_x = np.argsort(centres_x, kind="stable")
    parts = []
    for start in range(0, count, slab_size):
        slab = by_x[start : start + slab_size]
        parts.append(slab[np.argsort(centres_y[slab], kind="stable")])
    return np.concatenate(parts).astype(np.int64)


def _pack(boxes: np.ndarray, capacity: int) -> tuple[np.ndarray, np.ndarray]:
    count = boxes.shape[0]
    starts = np.arange(0, count, capacity, dtype=np.int64)
    stops = np.minimum(starts + capacity, count)
    packed = np.empty((starts.shape[0], 4), dtype=np.float64)
    packed[:, 0] = np.minimum.reduceat(boxes[:, 0], starts)
    packed[:, 1] = np.minimum.reduceat(boxes[:, 1], starts)
    packed[:, 2] = np.maximum.reduceat(boxes[:, 2], starts)
    packed[:, 3] = np.maximum.reduceat(boxes[:, 3], starts)
    return packed, np.column_stack([starts, stops])


__all__ = ["BoundingVolumeHierarchy", "DEFAULT_NODE_CAPACITY"]
