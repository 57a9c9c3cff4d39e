"""Scenario sweep runner + auto plot + validation report."""

from __future__ import annotations

from importlib import import_module
import logging
from pathlib import Path
from typing import Dict, List

from analysis.tree_stats import check_energy_monotonic, check_unit_directions, save_stats_json, tree_summary, trees_match
from optics_core.tracer import build_tree
from optics_io.hdf5_io import SceneData, save_trees_hdf5
from plots import scene_plot
from scenarios.common import make_config

logger = logging.getLogger(__name__)

SCENARIO_MODULES = {
    "S0": "scenarios.S0_single_interface",
    "S1": "scenarios.S1_blocker",
    "S2": "scenarios.S2_slab",
    "S3": "scenarios.S3_tir_cavity",
    "S4": "scenarios.S4_prism",
}


def run_all(out_h5: str = "artifacts/ray_trees.h5", out_plot_dir: str = "artifacts/plots") -> str:
    payload: Dict[str, SceneData] = {}
    all_stats: Dict[str, Dict[str, object]] = {}
    report_lines: List[str] = [
        "# Ray Tree Report",
        "",
        "- optical path length: `sum(segment length * medium index)` over segments ending on a surface",
        "- escaped and truncated rays are drawn to `escape_length` and excluded from path totals",
        "",
    ]
    failures: List[str] = []

    for sid, mod_name in SCENARIO_MODULES.items():
        mod = import_module(mod_name)
        report_lines.append(f"## {sid}")
        for p in mod.build_sweep_params():
            case_id = p["case_id"]
            logger.info("running %s:%s", sid, case_id)
            scene, trees = mod.run_case(p)
            payload[case_id] = SceneData(params=dict(p, scenario=sid), scene=scene, trees=trees)

            case_dir = str(Path(out_plot_dir) / sid / case_id)
            plot_path = scene_plot.plot_trees(scene.surfaces, trees, case_dir, name="rays")
            scene_plot.plot_depth_hist(trees, case_dir)

            config = make_config(p)
            for source_id, tree in trees.items():
                summary = tree_summary(tree)
                all_stats[f"{case_id}/{source_id}"] = summary
                report_lines.append(
                    f"- case `{case_id}` source `{source_id}`: chains={summary['chains']}, rays={summary['rays']}, "
                    f"terminations={summary['terminations']}, truncated={summary['truncated']}"
                )
                report_lines.append(
                    f"  - length={summary['geometric_length']:.3f}, OPL={summary['optical_path_length']:.3f}, "
                    f"final intensity [{summary['final_intensity_min']:.4f}, {summary['final_intensity_max']:.4f}]"
                )
                failures.extend(f"{sid}:{case_id} {msg}" for msg in check_energy_monotonic(tree))
                failures.extend(f"{sid}:{case_id} {msg}" for msg in check_unit_directions(tree))
                if not trees_match(tree, build_tree(scene.sources[source_id], scene, config)):
                    failures.append(f"{sid}:{case_id} rebuild of '{source_id}' is not reproducible")

                if sid == "S1" and summary["terminations"].get("absorbed", 0) != summary["chains"]:
                    failures.append(f"S1:{case_id} expected every chain absorbed, got {summary['terminations']}")
                if sid == "S3" and not (tree.truncated and summary["max_depth"] == p["max_depth"]):
                    failures.append(f"S3:{case_id} expected truncation at depth {p['max_depth']}, got {summary['max_depth']}")
                if tree.truncated and sid != "S3":
                    report_lines.append("  - WARNING: tree truncated at max_depth")
            report_lines.append(f"  - plot: [{case_id}]({plot_path})")
        report_lines.append("")

    Path(out_h5).parent.mkdir(parents=True, exist_ok=True)
    save_trees_hdf5(out_h5, payload)
    save_stats_json(str(Path(out_plot_dir).parent / "summary.json"), all_stats)

    report_lines.append("## Failure Checks")
    if failures:
        for msg in failures:
            report_lines.append(f"- FAIL: {msg}")
    else:
        report_lines.append("- PASS: No automatic failure checks triggered.")

    report_path = Path(out_plot_dir).parent / "report.md"
    report_path.write_text("\n".join(report_lines), encoding="utf-8")
    return str(report_path)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(run_all())
