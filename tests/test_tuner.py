from __future__ import annotations

import logging
import threading
from types import SimpleNamespace

import pytest

from abhrs import (
    ABHRSProtocol,
    CoDesignTuner,
    HillClimbRule,
    LeakageWeights,
    Parameters,
    ParameterStore,
    ProtocolConfig,
    RingSizeCost,
    RingSizeLeakage,
    TunerConfig,
    run_codesign_round,
    workload_from,
)
from abhrs.tuner import evaluate_round

MESSAGES = ["read_record", "update_record", "sign_note"]


def _stub(theta, item):
    """Transcript stand-in: only the ring length matters to the leakage model."""
    return SimpleNamespace(ring=[None] * max(theta.target_ring_size, 1))


def test_scenario_ring_growth_under_budget(proto, doctors) -> None:
    credential = proto.issue_credential_for("u1")
    result = proto.tune(
        "u1", credential, workload_from(MESSAGES, doctors), rounds=4, cost_budget=6.0,
    )

    assert result.ring_sizes == [4, 5, 6, 6]
    assert result.parameters.target_ring_size == 6
    assert result.history[0].leakage == pytest.approx(0.8)
    assert all(r.transcripts == 3 for r in result.history)


def test_tuning_publishes_versions_and_keeps_old_signatures_valid(proto, doctors) -> None:
    u1 = proto.registry.user("u1")
    credential = proto.issue_credential_for("u1")
    before = proto.sign("u1", credential, proto.build_ring([u1.public_key]), "m0", doctors)

    proto.tune("u1", credential, workload_from(MESSAGES, doctors), rounds=4, cost_budget=6.0)

    assert [p.version for p in proto.parameters_store.history()] == [0, 1, 2]
    assert proto.parameters.target_ring_size == 6
    assert proto.verify("m0", before, doctors)

    after = proto.sign("u1", credential, proto.build_ring([u1.public_key]), "m1", doctors)
    assert len(after.ring) == 6
    assert proto.verify("m1", after, doctors)


def test_tuning_does_not_advance_epochs(proto, doctors) -> None:
    credential = proto.issue_credential_for("u1")
    proto.tune("u1", credential, workload_from(MESSAGES, doctors), rounds=2)
    assert proto.keys.current("u1").epoch == 0


def test_reference_leakage_at_default_ring_size() -> None:
    model = RingSizeLeakage()
    score = model.score(SimpleNamespace(ring=[None] * 4), Parameters())

    assert score.attribute == pytest.approx(0.8)
    assert LeakageWeights().combine(
        score.attribute, score.policy, score.anonymity,
    ) == pytest.approx(0.8)


def test_leakage_never_increases_with_ring_size() -> None:
    model = RingSizeLeakage()
    values = [
        model.score(SimpleNamespace(ring=[None] * n), Parameters()).anonymity
        for n in range(1, 30)
    ]
    assert values == sorted(values, reverse=True)
    assert min(values) == pytest.approx(0.1)


def test_hill_climb_respects_budget_and_cap() -> None:
    rule = HillClimbRule(max_ring_size=5)
    theta = Parameters(target_ring_size=4)

    grown = rule.update(theta, leakage=0.8, cost=4.0, cost_budget=6.0)
    assert grown.target_ring_size == 5
    assert grown.version == 1

    assert rule.update(grown, 0.75, 5.0, 6.0) is grown
    assert rule.update(theta, 0.8, 6.0, 6.0) is theta


def test_hill_climb_rejects_negative_cap() -> None:
    with pytest.raises(ValueError):
        HillClimbRule(max_ring_size=-1)


def test_run_codesign_round_single_step() -> None:
    nxt = run_codesign_round(Parameters(), workload_from(MESSAGES, None), 6.0, simulate=_stub)
    assert nxt.target_ring_size == 5


def test_empty_workload_scores_zero_leakage() -> None:
    report = evaluate_round(
        Parameters(), [], _stub, RingSizeLeakage(), RingSizeCost(), LeakageWeights(),
    )
    assert report.leakage == 0.0
    assert report.transcripts == 0
    assert report.cost == 4.0


def test_tuner_simulates_every_item_every_round() -> None:
    calls = []
    lock = threading.Lock()

    def simulate(theta, item):
        with lock:
            calls.append((theta.version, item.message))
        return _stub(theta, item)

    tuner = CoDesignTuner(simulate, TunerConfig(workers=3))
    tuner.run(Parameters(), workload_from(MESSAGES, None), rounds=3, cost_budget=100.0)

    assert len(calls) == 9
    assert sorted({v for v, _ in calls}) == [0, 1, 2]


def test_tuner_stops_at_max_ring_size() -> None:
    tuner = CoDesignTuner(_stub, TunerConfig(max_ring_size=6))
    result = tuner.run(Parameters(), workload_from(MESSAGES, None), rounds=8, cost_budget=100.0)
    assert result.parameters.target_ring_size == 6


def test_tuner_publishes_to_store() -> None:
    store = ParameterStore(Parameters())
    tuner = CoDesignTuner(_stub, store=store)
    result = tuner.run(Parameters(), workload_from(MESSAGES, None), rounds=2, cost_budget=100.0)

    assert store.current == result.parameters
    assert store.by_version(0) == Parameters()


def test_zero_rounds_keep_theta() -> None:
    result = CoDesignTuner(_stub).run(Parameters(), workload_from(MESSAGES, None), rounds=0)
    assert result.parameters == Parameters()
    assert result.history == []


def test_rounds_are_logged(caplog) -> None:
    caplog.set_level(logging.INFO, logger="abhrs.tuner")
    CoDesignTuner(_stub).run(Parameters(), workload_from(MESSAGES, None), rounds=2)
    assert "round 1: ring_size=4" in caplog.text
    assert "round 2: ring_size=5" in caplog.text


def test_seeded_tuning_is_reproducible(doctors) -> None:
    def run():
        proto = ABHRSProtocol.setup(ProtocolConfig.for_tests(seed=21))
        proto.register_ca("CA1")
        u1 = proto.enroll_user("u1", {"role": "doctor"}, "CA1", initial_secret=b"sk")
        credential = proto.issue_credential_for("u1")
        proto.tune("u1", credential, workload_from(MESSAGES * 4, doctors), rounds=3)
        return proto.build_ring([u1.public_key]).ids

    assert run() == run()
