"""
First-Fit Memory Space — Visualizer

Generates a simple Matplotlib heatmap showing allocated words over time.
Explicit defrag events are marked as horizontal lines.

How to run (recommended, from repo root):
    python -m tools.visualize_fragmentation --trace traces/fragmentation_stressor.jsonl --out out_fragmentation.png

Notes:
- Only the free list changes on defrag, so occupancy rows look the same
  before and after a defrag line; the caption reports the free-list metrics.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script:
# (python -m tools.visualize_fragmentation already works without this,
#  but this makes `python tools/visualize_fragmentation.py ...` work too.)
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from memory.space import MemorySpace
from memory.fragmentation import compute_metrics
from run_sim import load_trace, replay


def render_state(space: MemorySpace, width: int) -> np.ndarray:
    """
    Return a 1D occupancy array over the address range, binned to 'width'.
    A bin is 1.0 if any allocated word falls in it.
    """
    bins = np.zeros(width, dtype=np.float32)
    scale = space.max_size / width

    for base, length in space.allocated:
        a = int(base / scale)
        b = int((base + length - 1) / scale)
        a = max(0, min(width - 1, a))
        b = max(0, min(width - 1, b))
        bins[a : b + 1] = 1.0

    return bins


def collect_frames(space: MemorySpace, events, width: int, every: int = 1,
                   defrag_on_fail: bool = False):
    """Replay events one at a time; return (frames, defrag_marks)."""
    frames: list[np.ndarray] = []
    defrag_marks: list[int] = []
    addrs: dict[str, int] = {}

    for i, ev in enumerate(events, start=1):
        stats = replay(space, [ev], defrag_on_fail=defrag_on_fail, addrs=addrs)
        # explicit defrag events and retries after a failed malloc both count
        if stats["defrag_events"]:
            defrag_marks.append(len(frames))
        if every <= 1 or (i % every == 0):
            frames.append(render_state(space, width))

    return frames, defrag_marks


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--trace", required=True, help="Path to JSONL trace")
    ap.add_argument("--out", default="out_fragmentation.png", help="Output image file")
    ap.add_argument("--capacity", type=int, default=800, help="Address range size (words)")
    ap.add_argument("--width", type=int, default=140, help="Heatmap width (bins)")
    ap.add_argument("--every", type=int, default=1, help="Record every N events")
    ap.add_argument("--defrag-on-fail", action="store_true")
    args = ap.parse_args()

    trace_path = Path(args.trace)
    if not trace_path.exists():
        raise SystemExit(f"Trace not found: {trace_path}")

    space = MemorySpace(args.capacity)
    frames, defrag_marks = collect_frames(
        space, load_trace(str(trace_path)), args.width, args.every, args.defrag_on_fail
    )

    if not frames:
        raise SystemExit("No frames captured. Check trace path and --every.")

    H = np.stack(frames, axis=0)  # (time, width)

    fig = plt.figure(figsize=(10.5, 4.6))
    ax = fig.add_subplot(111)
    ax.imshow(H, aspect="auto", interpolation="nearest")
    ax.set_title("Allocated Words Heatmap (Trace-driven)")
    ax.set_xlabel("address (binned)")
    ax.set_ylabel("time (frames)")

    for t in defrag_marks:
        ax.axhline(t, linewidth=1)

    m = compute_metrics(space.free_blocks)
    caption = (
        f"Final fragmentation: largest={m.largest}, holes={m.hole_count}, "
        f"external_frag={m.external_frag:.3f}, entropy={m.entropy:.3f}"
    )
    fig.text(0.01, 0.01, caption, fontsize=9)

    fig.tight_layout()
    out_path = Path(args.out)
    fig.savefig(str(out_path), dpi=220)
    print(f"Wrote: {out_path.resolve()}")


if __name__ == "__main__":
    main()
