from __future__ import annotations

import logging

import pytest

from abhrs import (
    ABHRSProtocol,
    LogConfig,
    Parameters,
    ParameterStore,
    ProtocolConfig,
    TunerConfig,
    configure_logging,
)


def test_save_and_load_roundtrip(tmp_path) -> None:
    config = ProtocolConfig(
        parameters=Parameters(target_ring_size=5, decoy_ratio=0.25),
        tuner=TunerConfig(cost_budget=8.0, max_rounds=3),
        backend="symbolic",
        trust_anchors=["ROOT1", "ROOT2"],
        seed=9,
    )
    path = str(tmp_path / "abhrs.json")
    config.save(path)

    assert ProtocolConfig.load(path) == config


def test_from_dict_fills_defaults() -> None:
    config = ProtocolConfig.from_dict({"backend": "symbolic"})
    assert config.parameters == Parameters()
    assert config.trust_anchors == ["ROOT1"]
    assert config.validate() == []


@pytest.mark.parametrize("config", [
    ProtocolConfig(backend="rsa"),
    ProtocolConfig(trust_anchors=[]),
    ProtocolConfig(tuner=TunerConfig(max_ring_size=2)),
    ProtocolConfig(tuner=TunerConfig(workers=0)),
    ProtocolConfig(tuner=TunerConfig(leakage_floor=1.5)),
])
def test_invalid_configs_are_reported(config) -> None:
    assert config.validate()
    with pytest.raises(ValueError):
        ABHRSProtocol.setup(config)


@pytest.mark.parametrize("kwargs", [
    {"target_ring_size": -1},
    {"decoy_ratio": 1.5},
    {"version": -2},
])
def test_invalid_parameters(kwargs) -> None:
    with pytest.raises(ValueError):
        Parameters(**kwargs)


def test_parameters_are_frozen() -> None:
    theta = Parameters()
    with pytest.raises(AttributeError):
        theta.target_ring_size = 9  # type: ignore[misc]


def test_store_keeps_every_published_version() -> None:
    store = ParameterStore(Parameters())
    nxt = store.current.with_ring_size(5)
    store.publish(nxt)

    assert store.current == nxt
    assert store.by_version(0) == Parameters()
    assert store.by_version(1) == nxt
    assert store.by_version(7) is None
    assert store.history() == [Parameters(), nxt]


def test_store_rejects_conflicting_version() -> None:
    store = ParameterStore(Parameters())
    with pytest.raises(ValueError):
        store.publish(Parameters(target_ring_size=9))


def test_seeded_config_selects_reproducible_engine() -> None:
    a = ABHRSProtocol.setup(ProtocolConfig.for_tests(seed=11))
    b = ABHRSProtocol.setup(ProtocolConfig.for_tests(seed=11))
    assert a.register_ca("CA1").public_key == b.register_ca("CA1").public_key


def test_configure_logging_writes_to_file(tmp_path) -> None:
    path = tmp_path / "abhrs.log"
    configure_logging(LogConfig(level="debug", file=str(path)))
    logger = logging.getLogger("abhrs")
    try:
        logging.getLogger("abhrs.test").debug("hello from the engine")
        assert "hello from the engine" in path.read_text()
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.setLevel(logging.NOTSET)
