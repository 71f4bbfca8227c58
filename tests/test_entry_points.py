"""Smoke tests for the command-line runner, validation script and figure."""

import matplotlib

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from illusory_senescence import config, run_experiments, validate_model  # noqa: E402
from illusory_senescence.experiments import VARIANTS, run_demonstration  # noqa: E402
from illusory_senescence.fitting import COMPARISON_COLUMNS  # noqa: E402
from illusory_senescence.viz_utils import generate_main_figure  # noqa: E402


# ── run_experiments ──────────────────────────────────────────────────

class TestRunExperimentsMain:
    def test_quick_run_writes_everything(self, tmp_path, capsys):
        run_experiments.main(["--mode", "quick", "--figures", "--results-dir", str(tmp_path)])

        for variant in VARIANTS:
            comparison = pd.read_csv(tmp_path / variant / "comparison_quick.csv")
            assert list(comparison.columns) == COMPARISON_COLUMNS
            assert (tmp_path / variant / "observations_quick.csv").exists()

        summary = pd.read_csv(tmp_path / "replicates" / "replicate_summary_quick.csv")
        assert sorted(summary["variant"]) == sorted(VARIANTS)
        assert (summary["n_seeds"] == config.N_SEEDS_QUICK).all()

        assert (tmp_path / "figures" / "Figure_1_Main_quick.png").exists()
        assert "panel skipped" not in capsys.readouterr().out

    def test_only_one_variant(self, tmp_path):
        run_experiments.main(["--mode", "quick", "--only", "age_only", "--results-dir", str(tmp_path)])
        assert (tmp_path / "age_only" / "comparison_quick.csv").exists()
        assert not (tmp_path / "selective" / "comparison_quick.csv").exists()
        assert not (tmp_path / "replicates" / "replicate_summary_quick.csv").exists()

    def test_unknown_choice_rejected(self):
        with pytest.raises(SystemExit):
            run_experiments.parse_args(["--only", "bogus"])


# ── validate_model ───────────────────────────────────────────────────

class TestValidateModel:
    def test_prints_reference_values(self, monkeypatch, capsys):
        monkeypatch.setattr(config, "N_INDIVIDUALS", 500)
        validate_model.main()
        out = capsys.readouterr().out
        assert "repro_prob(5) = 0.7" in out
        assert "plateau(longevity=11) = 0.8" in out
        assert out.rstrip().endswith("[VALIDATION COMPLETE]")

    def test_truncated_geometric_moments(self):
        mean, var = validate_model.truncated_geometric_moments(0.5, 2, 2)
        assert mean == pytest.approx(2.0)
        assert var == pytest.approx(0.0)


# ── viz_utils ────────────────────────────────────────────────────────

class TestGenerateMainFigure:
    def test_no_results_skips(self, tmp_path, capsys):
        assert generate_main_figure(mode="quick", root=str(tmp_path)) is None
        assert "No result CSVs found" in capsys.readouterr().out

    def test_comparison_panels_from_demonstrations(self, tmp_path, capsys):
        for variant in VARIANTS:
            run_demonstration(
                variant,
                mode="quick",
                n_individuals=1_000,
                seed=3,
                logger_warn=lambda msg: None,
                logger_info=lambda msg: None,
                out_root=tmp_path,
            )
        png = generate_main_figure(mode="quick", root=str(tmp_path))
        assert png is not None
        assert png.endswith("Figure_1_Main_quick.png")
        out = capsys.readouterr().out
        assert "age_only panel skipped" not in out
        assert "selective panel skipped" not in out
