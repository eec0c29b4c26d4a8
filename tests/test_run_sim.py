import json
import sys
from pathlib import Path

import numpy as np
import pytest

import bench
import run_sim
from memory.space import MemorySpace
import tools.visualize_fragmentation as visualize
from tools.visualize_fragmentation import collect_frames, render_state

REPO = Path(__file__).resolve().parents[1]
TRACES = REPO / "traces"


def test_replay_counts_events():
    space = MemorySpace(20)
    events = [
        {"event": "malloc", "id": "a", "length": 10},
        {"event": "malloc", "id": "b", "length": 5},
        {"event": "malloc", "id": "c", "length": 5},
        {"event": "free", "id": "b"},
        {"event": "free", "id": "a"},
        {"event": "malloc", "id": "d", "length": 15},
        {"event": "free", "id": "nope"},
        {"event": "defrag"},
    ]
    stats = run_sim.replay(space, events)
    assert stats["malloc_events"] == 4
    assert stats["malloc_fail"] == 1
    assert stats["frag_fail"] == 1
    assert stats["ignored_free"] == 1
    assert stats["defrag_events"] == 1
    assert space.free_blocks == [(0, 15)]


def test_replay_defrag_on_fail_retries():
    space = MemorySpace(20)
    events = [
        {"event": "malloc", "id": "a", "length": 10},
        {"event": "malloc", "id": "b", "length": 10},
        {"event": "free", "id": "b"},
        {"event": "free", "id": "a"},
        {"event": "malloc", "id": "c", "length": 20},
    ]
    stats = run_sim.replay(space, events, defrag_on_fail=True)
    assert stats["retry_ok"] == 1
    assert stats["malloc_fail"] == 0
    assert space.allocated == [(0, 20)]


def test_replay_counts_invalid_free():
    space = MemorySpace(20)
    stats = run_sim.replay(space, [{"event": "free", "id": "x"}])
    assert stats["invalid_free"] == 1
    assert space.free_blocks == [(0, 20)]


def test_replay_rejects_unknown_event():
    with pytest.raises(ValueError):
        run_sim.replay(MemorySpace(10), [{"event": "compact"}])


def test_stressor_trace():
    events = list(run_sim.load_trace(str(TRACES / "fragmentation_stressor.jsonl")))

    space = MemorySpace(800)
    stats = run_sim.replay(space, events)
    assert stats["malloc_fail"] == 2
    assert stats["frag_fail"] == 2
    assert stats["defrag_events"] == 2
    assert space.used() == 460
    assert space.free_blocks == [(0, 50), (360, 140), (550, 50), (650, 50), (750, 50)]

    space = MemorySpace(800)
    stats = run_sim.replay(space, events, defrag_on_fail=True)
    # retrying after defrag still leaves no 120-word run for c1 and c2
    assert stats["malloc_fail"] == 3
    assert stats["retry_ok"] == 1
    assert stats["defrag_events"] == 6
    assert space.used() + space.free_words() == 800


def test_mixed_trace_ends_empty():
    space = MemorySpace(800)
    stats = run_sim.replay(space, run_sim.load_trace(str(TRACES / "mixed_workload.jsonl")))
    assert space.allocated == []
    assert space.free_blocks == [(0, 800)]
    assert stats["ignored_free"] == 1
    assert stats["invalid_free"] == 4


def test_main_prints_summary(tmp_path, monkeypatch, capsys):
    trace = tmp_path / "t.jsonl"
    trace.write_text("\n".join(json.dumps(ev) for ev in [
        {"event": "malloc", "id": "a", "length": 17},
        {"event": "malloc", "id": "b", "length": 40},
        {"event": "free", "id": "a"},
    ]) + "\n", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["run_sim.py", "--trace", str(trace),
                                      "--capacity", "80", "--show-map"])
    run_sim.main()
    out = capsys.readouterr().out
    assert "Used: 40" in out
    assert "(57 , 23) (0 , 17)\n(17 , 40)" in out

    m = bench.parse(out)
    assert m["used"] == 40
    assert m["malloc_fail"] == 0
    assert m["holes"] == 2


def test_collect_frames_marks_defrag():
    events = [
        {"event": "malloc", "id": "a", "length": 50},
        {"event": "malloc", "id": "b", "length": 50},
        {"event": "free", "id": "a"},
        {"event": "defrag"},
    ]
    space = MemorySpace(100)
    frames, marks = collect_frames(space, events, width=10)
    assert len(frames) == 4
    assert marks == [3]
    np.testing.assert_array_equal(frames[1], np.ones(10, dtype=np.float32))
    np.testing.assert_array_equal(render_state(space, 10), np.array([0] * 5 + [1] * 5, dtype=np.float32))


def test_collect_frames_marks_retry_defrag():
    events = [
        {"event": "malloc", "id": "a", "length": 10},
        {"event": "malloc", "id": "b", "length": 10},
        {"event": "free", "id": "b"},
        {"event": "free", "id": "a"},
        {"event": "malloc", "id": "c", "length": 20},
    ]
    space = MemorySpace(20)
    frames, marks = collect_frames(space, events, width=4, defrag_on_fail=True)
    assert space.allocated == [(0, 20)]
    assert marks == [4]
    assert len(frames) == 5


def test_replay_reused_id_releases_old_block():
    space = MemorySpace(20)
    events = [
        {"event": "malloc", "id": "a", "length": 5},
        {"event": "malloc", "id": "a", "length": 5},
        {"event": "free", "id": "a"},
    ]
    stats = run_sim.replay(space, events)
    assert stats["reused_id"] == 1
    assert stats["ignored_free"] == 0
    assert space.allocated == []
    assert space.used() == 0


def test_replay_reused_id_after_free_is_not_counted():
    space = MemorySpace(20)
    events = [
        {"event": "malloc", "id": "a", "length": 5},
        {"event": "free", "id": "a"},
        {"event": "malloc", "id": "a", "length": 5},
    ]
    stats = run_sim.replay(space, events)
    assert stats["reused_id"] == 0
    assert space.allocated == [(5, 5)]


def test_visualize_main_writes_image(tmp_path, monkeypatch, capsys):
    out = tmp_path / "frag.png"
    monkeypatch.setattr(sys, "argv", [
        "visualize_fragmentation.py", "--trace", str(TRACES / "fragmentation_stressor.jsonl"),
        "--out", str(out), "--width", "40", "--defrag-on-fail",
    ])
    visualize.main()
    assert out.exists() and out.stat().st_size > 0
    assert "Wrote:" in capsys.readouterr().out


def test_visualize_main_missing_trace(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "argv", [
        "visualize_fragmentation.py", "--trace", str(tmp_path / "missing.jsonl"),
    ])
    with pytest.raises(SystemExit):
        visualize.main()


def test_bench_run_and_table(monkeypatch, capsys):
    monkeypatch.chdir(REPO)
    m = bench.parse(bench.run("fragmentation_stressor.jsonl", False))
    assert m["used"] == 460
    assert m["malloc_fail"] == 2
    assert m["frag_fail"] == 2
    assert m["holes"] == 5

    bench.main()
    out = capsys.readouterr().out
    assert "mixed_workload.jsonl" in out
    assert "on-fail" in out
