from __future__ import annotations

from dataclasses import asdict, dataclass
from itertools import chain
from typing import Iterable, Iterator, Optional, Sequence, Union

import numpy as np
import pandas as pd

FIRST_REPRO_AGE = 3

PRE_SENESCENT = "Pre-senescent"
SENESCENT = "Senescent"

AGE_ONLY_COLUMNS = ["individual", "longevity", "age", "repro_prob", "repro"]
SELECTIVE_COLUMNS = ["individual", "longevity", "age", "age_category", "repro_prob", "repro"]

ArrayLike = Union[float, Sequence[float], np.ndarray]


class InvalidParameter(ValueError):
    """A probability, survival rate, size or anchor set outside its valid domain."""


class EmptyPopulation(ValueError):
    """Sampling or simulation left no individuals/observations to fit."""


@dataclass(frozen=True)
class YearlyObservation:
    """One reproduction outcome for one individual at one age."""

    individual: int
    longevity: int
    age: int
    repro_prob: float
    repro: int
    age_category: Optional[str] = None  # variant B only


def _check_open_unit(name: str, value: float) -> None:
    if not (0.0 < value < 1.0):
        raise InvalidParameter(f"{name} must be in (0, 1), got {value!r}")


def interpolate_clamped(x: ArrayLike, xs: Sequence[float], ys: Sequence[float]):
    """
    Piecewise-linear interpolation through the anchors (xs, ys).

    Queries below xs[0] return ys[0] and queries above xs[-1] return ys[-1]
    (constant extrapolation, which is what produces the plateau). xs must be
    non-decreasing. If every anchor shares a single x the curve collapses to
    one point and all queries return the last anchor's y.

    Returns a float for scalar input, otherwise an ndarray of the input shape.
    """
    xp = np.asarray(xs, dtype=np.float64)
    fp = np.asarray(ys, dtype=np.float64)
    if xp.ndim != 1 or xp.size == 0:
        raise InvalidParameter("anchor x values must be a non-empty 1-D sequence")
    if fp.shape != xp.shape:
        raise InvalidParameter(
            f"anchor x and y must have the same length ({xp.size} vs {fp.size})"
        )
    if np.any(~np.isfinite(xp)) or np.any(~np.isfinite(fp)):
        raise InvalidParameter("anchors must be finite")
    if np.any(np.diff(xp) < 0):
        raise InvalidParameter(f"anchor x values must be non-decreasing, got {xp.tolist()}")

    q = np.asarray(x, dtype=np.float64)
    if xp[0] == xp[-1]:
        out = np.full(q.shape, fp[-1])
    else:
        # np.interp clamps to fp[0] / fp[-1] outside the anchor range.
        out = np.interp(q, xp, fp)

    if out.ndim == 0:
        return float(out)
    return out


def age_only_repro_prob(
    age: ArrayLike,
    *,
    age_at_min: float,
    age_at_plateau: float,
    prob_min: float,
    prob_plateau: float,
):
    """Variant A curve: (age_at_min, prob_min) -> (age_at_plateau, prob_plateau), flat beyond."""
    _check_open_unit("prob_min", prob_min)
    _check_open_unit("prob_plateau", prob_plateau)
    return interpolate_clamped(age, [age_at_min, age_at_plateau], [prob_min, prob_plateau])


def longevity_plateau(
    longevity: ArrayLike,
    *,
    plateau_age1: float,
    plateau_long1: float,
    plateau_age2: float,
    plateau_long2: float,
):
    """Plateau reproduction probability as a function of an individual's longevity."""
    _check_open_unit("plateau_long1", plateau_long1)
    _check_open_unit("plateau_long2", plateau_long2)
    return interpolate_clamped(
        longevity, [plateau_age1, plateau_age2], [plateau_long1, plateau_long2]
    )


def selective_repro_prob(
    age: ArrayLike,
    longevity: float,
    *,
    prob_age3: float,
    plateau_age1: float,
    plateau_long1: float,
    plateau_age2: float,
    plateau_long2: float,
):
    """
    Variant B curve for one individual.

    Rises linearly from (3, prob_age3) to (plateau_age1, plateau) and stays
    flat afterwards, where plateau = longevity_plateau(longevity). The curve
    never declines; only its plateau depends on longevity.
    """
    _check_open_unit("prob_age3", prob_age3)
    plateau = longevity_plateau(
        float(longevity),
        plateau_age1=plateau_age1,
        plateau_long1=plateau_long1,
        plateau_age2=plateau_age2,
        plateau_long2=plateau_long2,
    )
    return interpolate_clamped(age, [FIRST_REPRO_AGE, plateau_age1], [prob_age3, plateau])


def age_category(age: int, prime_age_cutoff: int) -> str:
    return SENESCENT if age - prime_age_cutoff > 0 else PRE_SENESCENT


def sample_lifespans(
    n: int,
    *,
    survival: float,
    lo: int,
    hi: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Draw n geometric lifespans and keep those inside [lo, hi].

    Each draw is the number of yearly trials up to and including the first
    death, with per-year death probability 1 - survival (support 1, 2, ...).
    Out-of-range draws are discarded, not re-drawn, so len(result) <= n.
    """
    if n <= 0:
        raise InvalidParameter("n must be positive")
    _check_open_unit("survival", survival)
    if lo > hi:
        raise InvalidParameter(f"lo must be <= hi, got lo={lo} hi={hi}")

    draws = rng.geometric(p=1.0 - survival, size=n)
    kept = draws[(draws >= lo) & (draws <= hi)].astype(np.int64, copy=False)
    if kept.size == 0:
        raise EmptyPopulation(
            f"no lifespans in [{lo}, {hi}] out of {n} draws (survival={survival})"
        )
    return kept


def iter_age_only_history(
    individual: int,
    longevity: int,
    *,
    rng: np.random.Generator,
    age_at_min: float,
    age_at_plateau: float,
    prob_min: float,
    prob_plateau: float,
) -> Iterator[YearlyObservation]:
    for age in range(FIRST_REPRO_AGE, int(longevity) + 1):
        p = age_only_repro_prob(
            age,
            age_at_min=age_at_min,
            age_at_plateau=age_at_plateau,
            prob_min=prob_min,
            prob_plateau=prob_plateau,
        )
        yield YearlyObservation(
            individual=int(individual),
            longevity=int(longevity),
            age=age,
            repro_prob=p,
            repro=int(rng.random() < p),
        )


def iter_selective_history(
    individual: int,
    longevity: int,
    *,
    rng: np.random.Generator,
    prob_age3: float,
    plateau_age1: float,
    plateau_long1: float,
    plateau_age2: float,
    plateau_long2: float,
    prime_age_cutoff: int,
) -> Iterator[YearlyObservation]:
    for age in range(FIRST_REPRO_AGE, int(longevity) + 1):
        p = selective_repro_prob(
            age,
            longevity,
            prob_age3=prob_age3,
            plateau_age1=plateau_age1,
            plateau_long1=plateau_long1,
            plateau_age2=plateau_age2,
            plateau_long2=plateau_long2,
        )
        yield YearlyObservation(
            individual=int(individual),
            longevity=int(longevity),
            age=age,
            repro_prob=p,
            repro=int(rng.random() < p),
            age_category=age_category(age, prime_age_cutoff),
        )


def _to_frame(records: Iterable[YearlyObservation], columns: list[str]) -> pd.DataFrame:
    df = pd.DataFrame.from_records([asdict(r) for r in records])
    if df.empty:
        raise EmptyPopulation(f"no individual lives to age {FIRST_REPRO_AGE}; nothing to fit")
    return df.loc[:, columns].astype({"repro": np.int64})


def simulate_age_only(
    longevities: Sequence[int],
    *,
    rng: np.random.Generator,
    age_at_min: float,
    age_at_plateau: float,
    prob_min: float,
    prob_plateau: float,
) -> pd.DataFrame:
    """
    Variant A: reproduction depends on age only.

    One row per (individual, age) for ages 3..longevity, in individual then
    age order. Averaged over many individuals, the per-age reproduction rate
    converges to age_only_repro_prob(age), which never declines.
    """
    if len(longevities) == 0:
        raise EmptyPopulation("no individuals to simulate")

    histories = (
        iter_age_only_history(
            i,
            L,
            rng=rng,
            age_at_min=age_at_min,
            age_at_plateau=age_at_plateau,
            prob_min=prob_min,
            prob_plateau=prob_plateau,
        )
        for i, L in enumerate(longevities)
    )
    return _to_frame(chain.from_iterable(histories), AGE_ONLY_COLUMNS)


def simulate_selective_disappearance(
    longevities: Sequence[int],
    *,
    rng: np.random.Generator,
    prob_age3: float,
    plateau_age1: float,
    plateau_long1: float,
    plateau_age2: float,
    plateau_long2: float,
    prime_age_cutoff: int,
) -> pd.DataFrame:
    """
    Variant B: each individual rises to a plateau set by its longevity.

    With plateau_long2 < plateau_long1 long-lived individuals reproduce less,
    so older age classes are increasingly made up of low-plateau individuals
    and the pooled rate declines with age although no individual curve does.
    Rows are tagged "Senescent" past prime_age_cutoff.
    """
    if len(longevities) == 0:
        raise EmptyPopulation("no individuals to simulate")

    histories = (
        iter_selective_history(
            i,
            L,
            rng=rng,
            prob_age3=prob_age3,
            plateau_age1=plateau_age1,
            plateau_long1=plateau_long1,
            plateau_age2=plateau_age2,
            plateau_long2=plateau_long2,
            prime_age_cutoff=prime_age_cutoff,
        )
        for i, L in enumerate(longevities)
    )
    return _to_frame(chain.from_iterable(histories), SELECTIVE_COLUMNS)
