from __future__ import annotations
import subprocess
import sys
import re
from pathlib import Path

PY = sys.executable  # respects venv if activated, otherwise uses current python

TRACES = Path("traces")

SCENARIOS = [
    ("fragmentation_stressor.jsonl", False),
    ("fragmentation_stressor.jsonl", True),
    ("mixed_workload.jsonl", False),
    ("mixed_workload.jsonl", True),
]

PATTERNS = {
    "used": re.compile(r"Used:\s+(\d+)"),
    "malloc_fail": re.compile(r"Malloc failures:\s+(\d+)"),
    "frag_fail": re.compile(r"Fragmentation failures:\s+(\d+)"),
    "retry_ok": re.compile(r"Retries ok:\s+(\d+)"),
    "defrag": re.compile(r"defrag=(\d+)"),
    "largest": re.compile(r"Fragmentation: largest=(\d+)"),
    "holes": re.compile(r"holes=(\d+)"),
    "external_frag": re.compile(r"external_frag=([0-9\.]+)"),
}

def run(trace: str, defrag_on_fail: bool) -> str:
    cmd = [PY, "run_sim.py", "--trace", str(TRACES / trace)]
    if defrag_on_fail:
        cmd.append("--defrag-on-fail")
    return subprocess.check_output(cmd, stderr=subprocess.STDOUT, text=True)

def parse(out: str):
    def get(key, default=None):
        m = PATTERNS[key].search(out)
        return m.group(1) if m else default
    return {
        "used": int(get("used", 0)),
        "malloc_fail": int(get("malloc_fail", 0)),
        "frag_fail": int(get("frag_fail", 0)),
        "retry_ok": int(get("retry_ok", 0)),
        "defrag": int(get("defrag", 0)),
        "largest": int(get("largest", 0)),
        "holes": int(get("holes", 0)),
        "external_frag": float(get("external_frag", 0.0)),
    }

def main():
    rows=[]
    for trace, defrag_on_fail in SCENARIOS:
        rows.append((trace, defrag_on_fail, parse(run(trace, defrag_on_fail))))

    header = ["trace","defrag","used","fails","frag_fails","retry_ok","defrags","largest","holes","ext_frag"]
    print("="*110)
    print("First-Fit Memory Space — Benchmark Table")
    print("="*110)
    print("{:<30} {:<7} {:>6} {:>6} {:>10} {:>9} {:>8} {:>8} {:>6} {:>8}".format(*header))
    for trace, defrag_on_fail, m in rows:
        print("{:<30} {:<7} {:>6} {:>6} {:>10} {:>9} {:>8} {:>8} {:>6} {:>8.3f}".format(
            trace, "on-fail" if defrag_on_fail else "manual", m["used"], m["malloc_fail"], m["frag_fail"],
            m["retry_ok"], m["defrag"], m["largest"], m["holes"], m["external_frag"]
        ))
    print("="*110)
    print("Tip: add --show-map for a visual memory-map demo.")
    print("  python run_sim.py --trace traces/fragmentation_stressor.jsonl --show-map")

if __name__ == "__main__":
    main()
