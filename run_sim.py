from __future__ import annotations
import argparse, json, logging
from typing import Dict, Optional
from memory.space import MemorySpace
from memory.fragmentation import compute_metrics, is_fragmented_for
from viz.ascii_map import render_map

logger = logging.getLogger(__name__)

def load_trace(path: str):
    with open(path,'r',encoding='utf-8') as f:
        for line in f:
            line=line.strip()
            if line:
                yield json.loads(line)

def replay(space: MemorySpace, events, defrag_on_fail: bool=False,
           addrs: Optional[Dict[str,int]]=None) -> Dict[str,int]:
    """Apply trace events to `space`; return event counters.

    `addrs` maps trace ids to allocated addresses; pass the same dict across
    calls to replay a trace incrementally.
    """
    if addrs is None:
        addrs = {}
    stats={
        'malloc_events':0,'free_events':0,'defrag_events':0,
        'malloc_fail':0,'frag_fail':0,'retry_ok':0,
        'ignored_free':0,'invalid_free':0,'reused_id':0,
    }

    for ev in events:
        et=ev['event']

        if et=='malloc':
            obj=str(ev['id']); length=int(ev['length'])
            stats['malloc_events'] += 1
            if obj in addrs:
                # a live id is reused: release its old block so it cannot leak
                stats['reused_id'] += 1
                space.free(addrs.pop(obj))
            addr=space.malloc(length)
            if addr < 0 and defrag_on_fail:
                # caller-side policy: coalesce and retry once
                space.defrag()
                stats['defrag_events'] += 1
                addr=space.malloc(length)
                if addr >= 0:
                    stats['retry_ok'] += 1
            if addr < 0:
                stats['malloc_fail'] += 1
                if is_fragmented_for(space.free_blocks, length):
                    stats['frag_fail'] += 1
                continue
            addrs[obj]=addr
            continue

        if et=='free':
            obj=str(ev['id'])
            stats['free_events'] += 1
            addr=addrs.pop(obj, -1)
            try:
                if space.block_at(addr) is None and space.allocated:
                    stats['ignored_free'] += 1
                space.free(addr)
            except ValueError as e:
                logger.warning("free %s: %s", obj, e)
                stats['invalid_free'] += 1
            continue

        if et=='defrag':
            space.defrag()
            stats['defrag_events'] += 1
            continue

        raise ValueError(f"unknown trace event {et!r}")

    return stats

def main():
    ap=argparse.ArgumentParser()
    ap.add_argument('--trace', required=True)
    ap.add_argument('--capacity', type=int, default=800)
    ap.add_argument('--defrag-on-fail', action='store_true',
                    help="On malloc failure, call defrag() and retry once. "
                         "MemorySpace never does this on its own.")
    ap.add_argument('--show-map', action='store_true')
    ap.add_argument('-v', '--verbose', action='store_true')
    args=ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    space=MemorySpace(args.capacity)
    stats=replay(space, load_trace(args.trace), defrag_on_fail=args.defrag_on_fail)

    m=compute_metrics(space.free_blocks)
    print("="*72)
    print("First-Fit Memory Space — Simulator Summary")
    print("="*72)
    print(f"Trace: {args.trace}   Defrag-on-fail: {args.defrag_on_fail}")
    print(f"Capacity: {space.max_size}  Used: {space.used()}  Free: {space.free_words()}")
    print(f"Events: malloc={stats['malloc_events']} free={stats['free_events']} defrag={stats['defrag_events']}")
    print(f"Malloc failures: {stats['malloc_fail']}  Fragmentation failures: {stats['frag_fail']}  Retries ok: {stats['retry_ok']}")
    print(f"Frees: ignored={stats['ignored_free']} invalid={stats['invalid_free']} reused_ids={stats['reused_id']}")
    print("-"*72)
    print(f"Fragmentation: largest={m.largest} holes={m.hole_count} adjacent={m.adjacent_pairs} "
          f"external_frag={m.external_frag:.3f} entropy={m.entropy:.3f}")
    if args.show_map:
        print("-"*72)
        print("Memory map (ASCII):")
        print(render_map(space))
        print("Free / allocated lists:")
        print(space.describe())
    print("="*72)

if __name__=='__main__':
    main()
