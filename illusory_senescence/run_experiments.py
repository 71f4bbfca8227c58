from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from . import config
from .experiments import VARIANTS, run_demonstration, run_replicate_sweep
from .io_utils import ensure_results_layout, get_logger


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the illusory-senescence demonstrations.")
    p.add_argument(
        "--mode",
        choices=["full", "quick"],
        default="full",
        help="full: N_INDIVIDUALS+N_SEEDS; quick: smaller dev run writing _quick outputs",
    )
    p.add_argument(
        "--only",
        choices=[*VARIANTS, "replicates", "all"],
        default="all",
        help="Run only one demonstration or the replicate sweep ('all' runs everything).",
    )
    p.add_argument(
        "--seed",
        type=int,
        default=config.BASE_SEED,
        help="Seed for the single-run demonstrations.",
    )
    p.add_argument(
        "--figures",
        action="store_true",
        help="Render the comparison figure after the runs.",
    )
    p.add_argument(
        "--results-dir",
        type=Path,
        default=None,
        help="Write results here instead of the package results/ directory.",
    )
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    mode = args.mode
    only = args.only

    root = ensure_results_layout(args.results_dir)
    logger = get_logger(mode=mode, root=root)

    if mode == "quick":
        n_individuals = config.N_INDIVIDUALS_QUICK
        n_seeds = config.N_SEEDS_QUICK
    else:
        n_individuals = config.N_INDIVIDUALS
        n_seeds = config.N_SEEDS

    logger.info(f"RUN START mode={mode} n_individuals={n_individuals} n_seeds={n_seeds} seed={args.seed}")
    if only != "all":
        logger.info(f"RUN CONFIG only={only}")

    warn = logger.warning
    info = logger.info

    for variant in VARIANTS:
        if only in ("all", variant):
            run_demonstration(
                variant,
                mode=mode,
                n_individuals=n_individuals,
                seed=args.seed,
                logger_warn=warn,
                logger_info=info,
                out_root=root,
            )
    if only in ("all", "replicates"):
        run_replicate_sweep(
            mode=mode,
            n_individuals=n_individuals,
            n_seeds=n_seeds,
            logger_warn=warn,
            logger_info=info,
            out_root=root,
        )

    if args.figures:
        from .viz_utils import generate_main_figure

        generate_main_figure(mode=mode, root=str(root))

    logger.info("RUN END")


if __name__ == "__main__":
    main()
