"""Seeded generation of permuted sample-index matrices.

Permutation-based nominal passes shuffle the sample labels of the
genotype (or of the phenotype) many times and rerun the regressions.
The estimation core never shuffles anything itself; callers draw an
index matrix here and use it to reorder rows before each batch call::

    perm = generate_permutation_indices(1000, n_samples, seed=1)
    for k in range(perm.shape[1]):
        fit = trc_regression(trc, lib_size, x[perm[:, k]], cov)

The generator is stateless: all randomness flows from the explicit
``seed`` argument through :func:`numpy.random.default_rng`, so the same
seed always reproduces the same matrix.

Uniqueness
----------
With ``unique=True`` no two replicates share an ordering.  Two regimes:

1. **Rank sampling** (``n_samples <= max_exhaustive``): each of the n!
   orderings is indexed by its lexicographic rank.  Ranks are drawn
   without replacement and decoded via the factorial number system, so
   uniqueness is exact and memory is O(K·N) regardless of n!.

2. **Batch shuffling** (larger ``n_samples``): all K orderings come from
   one vectorised ``Generator.permuted`` call.  When the birthday bound
   ``K(K−1) / (2·n!)`` is non-negligible, duplicates are removed with a
   hash set and the gaps are refilled with fresh draws.
"""

from __future__ import annotations

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

_COLLISION_TOLERANCE = 1e-9

# 20! is the largest factorial that fits in a signed 64-bit rank.
_MAX_EXHAUSTIVE = 20


def _unrank_permutation(rank: int, n: int) -> list[int]:
    """Decode lexicographic *rank* into a permutation of ``[0..n-1]``.

    The rank is written in the factorial number system; digit *i*
    (base ``(n-1-i)!``) picks the next element from the shrinking pool
    of unused indices.
    """
    pool = list(range(n))
    result: list[int] = []
    for i in range(n, 0, -1):
        digit, rank = divmod(rank, math.factorial(i - 1))
        result.append(pool.pop(digit))
    return result


def _draw_by_rank(
    rng: np.random.Generator,
    n_replicates: int,
    n_samples: int,
    exclude_identity: bool,
) -> np.ndarray:
    total = math.factorial(n_samples)
    # The identity ordering has rank 0.
    first = 1 if exclude_identity else 0
    available = total - first
    if n_replicates > available:
        raise ValueError(
            f"Requested {n_replicates} unique permutations but only "
            f"{available} are available for n_samples={n_samples} "
            f"(exclude_identity={exclude_identity})."
        )
    ranks = rng.choice(available, size=n_replicates, replace=False) + first
    return np.array(
        [_unrank_permutation(int(r), n_samples) for r in ranks],
        dtype=np.intp,
    ).reshape(n_replicates, n_samples)


def _draw_by_shuffle(
    rng: np.random.Generator,
    n_replicates: int,
    n_samples: int,
    unique: bool,
    exclude_identity: bool,
) -> np.ndarray:
    batch = np.tile(np.arange(n_samples, dtype=np.intp), (n_replicates, 1))
    rng.permuted(batch, axis=1, out=batch)

    collision_bound = (
        n_replicates * (n_replicates - 1) / (2 * math.factorial(n_samples))
    )
    dedup = unique and collision_bound >= _COLLISION_TOLERANCE
    if not dedup and not exclude_identity:
        return batch

    seen: set[tuple[int, ...]] = set()
    if exclude_identity:
        seen.add(tuple(range(n_samples)))

    result = np.empty_like(batch)
    count = 0
    for row in batch:
        key = tuple(row.tolist())
        if key in seen:
            continue
        if dedup:
            seen.add(key)
        result[count] = row
        count += 1

    max_attempts = 20 * n_replicates + 1000
    attempts = 0
    while count < n_replicates and attempts < max_attempts:
        row = rng.permutation(n_samples)
        key = tuple(row.tolist())
        attempts += 1
        if key in seen:
            continue
        if dedup:
            seen.add(key)
        result[count] = row
        count += 1

    if count < n_replicates:
        raise RuntimeError(
            f"Could only draw {count} of {n_replicates} distinct permutations "
            f"of {n_samples} samples."
        )
    return result


def generate_permutation_indices(
    n_replicates: int,
    n_samples: int,
    seed: int | None = None,
    *,
    unique: bool = True,
    exclude_identity: bool = False,
    max_exhaustive: int = 10,
) -> np.ndarray:
    """Draw a matrix of permuted sample indices.

    Args:
        n_replicates: Number of permutations K.
        n_samples: Number of samples N.
        seed: Seed for :func:`numpy.random.default_rng`.  ``None`` draws
            fresh OS entropy.
        unique: Reject repeated orderings.
        exclude_identity: Never return the unshuffled ordering
            ``[0, 1, ..., N-1]``.
        max_exhaustive: Use rank sampling when ``n_samples`` is at most
            this (only relevant when ``unique`` is set).  At most 20.

    Returns:
        Integer array of shape ``(n_samples, n_replicates)``; column *k*
        is a permutation of ``range(n_samples)`` (0-based).

    Raises:
        ValueError: If a count is negative, *max_exhaustive* exceeds 20,
            or more unique permutations are requested than exist.
    """
    if n_replicates < 0 or n_samples < 0:
        raise ValueError(
            f"n_replicates and n_samples must be non-negative, got "
            f"{n_replicates} and {n_samples}."
        )
    if max_exhaustive > _MAX_EXHAUSTIVE:
        raise ValueError(
            f"max_exhaustive must be at most {_MAX_EXHAUSTIVE}, got "
            f"{max_exhaustive}; larger factorials overflow the rank sampler."
        )
    rng = np.random.default_rng(seed)

    if unique and n_samples <= max_exhaustive:
        rows = _draw_by_rank(rng, n_replicates, n_samples, exclude_identity)
    else:
        if exclude_identity and n_samples <= 1 and n_replicates > 0:
            raise ValueError(
                f"No non-identity permutation exists for n_samples={n_samples}."
            )
        rows = _draw_by_shuffle(rng, n_replicates, n_samples, unique, exclude_identity)

    logger.debug("Drew %d permutations of %d samples", n_replicates, n_samples)
    return rows.T
