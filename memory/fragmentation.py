from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple
import math

@dataclass
class FragMetrics:
    total_free: int
    largest: int
    external_frag: float
    entropy: float
    hole_count: int
    adjacent_pairs: int

def _entropy(sizes: List[int]) -> float:
    total = sum(sizes)
    if total <= 0:
        return 0.0
    ps = [s/total for s in sizes if s>0]
    return -sum(p*math.log(p+1e-12, 2) for p in ps)

def _adjacent_pairs(free_blocks: List[Tuple[int,int]]) -> int:
    # pairs that defrag() would coalesce, regardless of current list order
    ordered = sorted(free_blocks)
    return sum(1 for (b0, l0), (b1, _) in zip(ordered, ordered[1:]) if b0 + l0 == b1)

def compute_metrics(free_blocks: List[Tuple[int,int]]) -> FragMetrics:
    sizes=[l for _,l in free_blocks if l>0]
    total_free=sum(sizes)
    largest=max(sizes, default=0)
    external = 0.0 if total_free==0 else max(0.0, 1.0 - (largest/total_free))
    return FragMetrics(total_free, largest, external, _entropy(sizes), len(sizes),
                       _adjacent_pairs(free_blocks))

def is_fragmented_for(free_blocks: List[Tuple[int,int]], length: int) -> bool:
    """True when enough words are free in total but no single block holds `length`."""
    sizes=[l for _,l in free_blocks]
    return sum(sizes) >= length and max(sizes, default=0) < length
