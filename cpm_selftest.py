# cpm_selftest.py
from math import isclose
from services.network import Entry, build_network
from services.scheduling import analyze

TOL = 1e-6

def row_map(rows):
    """Helper: index result rows by event id."""
    return {r["id"]: r for r in rows}

def assert_close(a, b, msg):
    assert isclose(a, b, rel_tol=0, abs_tol=TOL), f"{msg}: expected {b}, got {a}"

def run(entries):
    built = build_network(entries)
    assert not built.issues, f"Unexpected build issues: {[str(i) for i in built.issues]}"
    return analyze(built.network)

def test_linear_chain():
    # 1(2) -> 2(3) -> 3(4)  => project = 9, all critical
    res = run([
        Entry("A", 2, []),
        Entry("B", 3, [1]),
        Entry("C", 4, [2]),
    ])
    m = row_map(res["activities"])

    expected = {
        1: (0, 2, 0, 2),
        2: (2, 5, 2, 5),
        3: (5, 9, 5, 9),
    }
    for eid, (es, ef, ls, lf) in expected.items():
        assert_close(m[eid]["es"], es, f"{eid} ES")
        assert_close(m[eid]["ef"], ef, f"{eid} EF")
        assert_close(m[eid]["ls"], ls, f"{eid} LS")
        assert_close(m[eid]["lf"], lf, f"{eid} LF")
        assert_close(m[eid]["slack"], 0, f"{eid} slack")
        assert m[eid]["critical"] is True, f"{eid} should be critical"

    assert res["critical_path"] == [1, 2, 3]
    assert_close(res["project_duration"], 9, "Project duration (linear)")

def test_fork_with_two_sinks():
    # A(3) -> B(2), A(3) -> C(4); each sink anchors its own late finish
    res = run([
        Entry("A", 3, []),
        Entry("B", 2, [1]),
        Entry("C", 4, [1]),
    ])
    m = row_map(res["activities"])

    expected = {
        1: (0, 3, 3, 0),
        2: (3, 5, 5, 0),
        3: (3, 7, 7, 0),
    }
    for eid, (es, ef, lf, slack) in expected.items():
        assert_close(m[eid]["es"], es, f"{eid} ES")
        assert_close(m[eid]["ef"], ef, f"{eid} EF")
        assert_close(m[eid]["lf"], lf, f"{eid} LF")
        assert_close(m[eid]["slack"], slack, f"{eid} slack")

    assert all(r["critical"] for r in res["activities"]), "All three events should be critical"
    assert_close(res["project_duration"], 7, "Project duration (fork)")

def test_diamond():
    # A(1) -> B(2) -> D(1), A(1) -> C(3) -> D(1)
    res = run([
        Entry("A", 1, []),
        Entry("B", 2, [1]),
        Entry("C", 3, [1]),
        Entry("D", 1, [2, 3]),
    ])
    m = row_map(res["activities"])

    assert_close(m[4]["es"], 4, "D ES")
    assert_close(m[2]["slack"], 1, "B slack")
    critical_ids = {r["id"] for r in res["activities"] if r["critical"]}
    assert critical_ids == {1, 3, 4}, f"Critical path should be A-C-D, got {critical_ids}"

    links = {(l["from"], l["to"]): l["critical"] for l in res["links"]}
    assert links == {(1, 2): False, (1, 3): True, (2, 4): False, (3, 4): True}

if __name__ == "__main__":
    test_linear_chain()
    test_fork_with_two_sinks()
    test_diamond()
    print("CPM self-test passed: linear chain, fork, diamond")
