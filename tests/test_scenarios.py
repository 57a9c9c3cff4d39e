from pathlib import Path

from optics_io.hdf5_io import load_trees_hdf5
from scenarios import S0_single_interface, S1_blocker, S3_tir_cavity
from scenarios.runner import SCENARIO_MODULES, run_all


def test_single_interface_scene():
    scene, trees = S0_single_interface.run_case({"case_id": "t", "index": 1.5, "rays_per_unit": 0.2})
    fwd = trees["forward"]
    back = trees["backward"]
    assert all(len(c.branches) == 1 for c in fwd.chains)
    assert all(c.branches[0].medium_index == 1.5 for c in fwd.chains)
    assert all(c.branches == [] for c in back.chains)


def test_blocker_absorbs_every_chain():
    for p in S1_blocker.build_sweep_params():
        _, trees = S1_blocker.run_case(p)
        assert all(c.termination.value == "absorbed" for t in trees.values() for c in t.chains)


def test_cavity_truncates_at_requested_depth():
    for p in S3_tir_cavity.build_sweep_params():
        _, trees = S3_tir_cavity.run_case(p)
        tree = trees["trapped"]
        assert tree.truncated
        assert len(tree.chains[0].branches) == p["max_depth"]


def test_run_all_writes_report(tmp_path: Path):
    h5 = tmp_path / "trees.h5"
    report = Path(run_all(out_h5=str(h5), out_plot_dir=str(tmp_path / "plots")))
    text = report.read_text(encoding="utf-8")
    assert "PASS: No automatic failure checks triggered." in text
    for sid in SCENARIO_MODULES:
        assert f"## {sid}" in text
    loaded, _ = load_trees_hdf5(str(h5))
    assert "s3_depth8" in loaded
    assert loaded["s3_depth8"].trees["trapped"].truncated
    assert (tmp_path / "summary.json").exists()
