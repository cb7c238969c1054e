from __future__ import annotations

import pytest

from abhrs import IdAllocator, Parameters, PublicKeyRecord, SeededRandomness, build_ring
from abhrs.randomness import SystemRandomness


def _honest(n: int):
    return [PublicKeyRecord(pk_id=f"pk_h{i}", owner=f"h{i}", issuer="CA1") for i in range(n)]


@pytest.mark.parametrize("target", range(0, 8))
@pytest.mark.parametrize("honest_count", range(0, 6))
def test_ring_size_is_max_of_target_and_honest(target, honest_count) -> None:
    honest = _honest(honest_count)
    ring = build_ring(
        Parameters(target_ring_size=target), honest, IdAllocator(), SeededRandomness(1),
        with_points=False,
    )

    assert len(ring) == max(target, honest_count)
    assert {h.pk_id for h in honest} <= set(ring.ids)
    assert len(set(ring.ids)) == len(ring.ids)
    assert ring.decoy_count == max(0, target - honest_count)


def test_decoys_have_no_owner_and_decoy_issuer() -> None:
    ring = build_ring(Parameters(target_ring_size=4), _honest(1), IdAllocator(), SeededRandomness(1))
    decoys = [m for m in ring if m.is_decoy]

    assert len(decoys) == 3
    assert all(d.owner is None and d.issuer == "Decoy" for d in decoys)
    assert all(d.point is not None for d in decoys)
    assert len({d.point for d in decoys}) == 3


def test_target_is_a_floor_not_a_cap() -> None:
    ring = build_ring(Parameters(target_ring_size=2), _honest(5), IdAllocator(), SeededRandomness(1))
    assert len(ring) == 5
    assert ring.decoy_count == 0


def test_duplicate_honest_records_are_collapsed() -> None:
    h = _honest(2)
    ring = build_ring(Parameters(target_ring_size=3), h + [h[0]], IdAllocator(), SeededRandomness(1))
    assert len(ring) == 3
    assert len(set(ring.ids)) == 3


def test_seeded_rings_are_reproducible() -> None:
    def positions(seed: int):
        ring = build_ring(
            Parameters(target_ring_size=6), _honest(2), IdAllocator(), SeededRandomness(seed),
        )
        return [i for i, m in enumerate(ring) if not m.is_decoy]

    assert positions(5) == positions(5)


def test_ring_order_is_not_repeated() -> None:
    """Honest keys should land in varying positions across independent builds."""
    params = Parameters(target_ring_size=8)
    honest = _honest(3)
    rng = SystemRandomness()
    seen = set()
    for _ in range(50):
        ring = build_ring(params, honest, IdAllocator(), rng, with_points=False)
        seen.add(tuple(ring.ids.index(h.pk_id) for h in honest))

    assert len(seen) > 1


def test_ring_ids_are_unique_across_builds() -> None:
    ids = IdAllocator()
    rings = [build_ring(Parameters(), _honest(1), ids, SeededRandomness(2)) for _ in range(5)]
    assert len({r.ring_id for r in rings}) == 5
    decoy_ids = [m.pk_id for r in rings for m in r if m.is_decoy]
    assert len(decoy_ids) == len(set(decoy_ids))


def test_allocator_must_be_injected() -> None:
    with pytest.raises(TypeError):
        build_ring(Parameters(), _honest(1), with_points=False)  # type: ignore[call-arg]
