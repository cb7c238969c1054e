"""
Configuration for the ABHRS engine.

``Parameters`` is the tunable vector theta.  It is frozen: the tuner
publishes a new, versioned snapshot between rounds instead of mutating
the one signers and verifiers are holding.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field, asdict, replace
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

BACKENDS = ("symbolic", "secp256k1")


@dataclass(frozen=True)
class Parameters:
    """Parameter vector theta = (target ring size, decoy ratio)."""

    target_ring_size: int = 4
    decoy_ratio: float = 0.5
    version: int = 0

    def __post_init__(self) -> None:
        if self.target_ring_size < 0:
            raise ValueError("target_ring_size must be non-negative")
        if not 0.0 <= self.decoy_ratio <= 1.0:
            raise ValueError("decoy_ratio must lie in [0, 1]")
        if self.version < 0:
            raise ValueError("version must be non-negative")

    def with_ring_size(self, target_ring_size: int) -> Parameters:
        """Next snapshot with a new ring size and a bumped version."""
        return replace(
            self, target_ring_size=target_ring_size, version=self.version + 1,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class ParameterStore:
    """
    Process-wide holder of the current theta snapshot.

    Readers take ``current`` once per call and keep that snapshot; the
    tuner is the only writer and publishes between rounds.  Every
    published snapshot is kept by version so older signatures can be
    checked against the theta they were made under.
    """

    def __init__(self, initial: Parameters) -> None:
        self._lock = threading.Lock()
        self._current = initial
        self._history: Dict[int, Parameters] = {initial.version: initial}

    @property
    def current(self) -> Parameters:
        with self._lock:
            return self._current

    def publish(self, parameters: Parameters) -> None:
        with self._lock:
            known = self._history.get(parameters.version)
            if known is not None and known != parameters:
                raise ValueError(
                    f"version {parameters.version} already published with different values"
                )
            self._history[parameters.version] = parameters
            self._current = parameters
        logger.debug("published theta v%d: %s", parameters.version, parameters)

    def by_version(self, version: int) -> Optional[Parameters]:
        with self._lock:
            return self._history.get(version)

    def history(self) -> List[Parameters]:
        with self._lock:
            return [self._history[v] for v in sorted(self._history)]


@dataclass(frozen=True)
class LeakageWeights:
    """Weights of the attribute / policy / anonymity-set leakage axes."""

    attribute: float = 0.4
    policy: float = 0.3
    anonymity: float = 0.3

    def combine(self, attribute: float, policy: float, anonymity: float) -> float:
        return (
            self.attribute * attribute
            + self.policy * policy
            + self.anonymity * anonymity
        )


@dataclass
class TunerConfig:
    """Co-design tuner settings."""
    cost_budget: float = 6.0
    max_rounds: int = 5
    max_ring_size: int = 10            # hard cap, the controller's safety fuse
    leakage_floor: float = 0.1
    leakage_slope: float = 0.05
    workers: int = 4
    weights: LeakageWeights = field(default_factory=LeakageWeights)


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class ProtocolConfig:
    """
    Complete engine configuration.

    ``seed`` selects the deterministic randomness provider; leave it
    ``None`` outside of tests.
    """
    parameters: Parameters = field(default_factory=Parameters)
    tuner: TunerConfig = field(default_factory=TunerConfig)
    log: LogConfig = field(default_factory=LogConfig)
    backend: str = "secp256k1"
    trust_anchors: List[str] = field(default_factory=lambda: ["ROOT1"])
    seed: Optional[int] = None

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.backend not in BACKENDS:
            errors.append(f"Unknown backend: {self.backend}")

        if not self.trust_anchors:
            errors.append("at least one trust anchor is required")

        if self.tuner.max_rounds < 0:
            errors.append("max_rounds must be non-negative")

        if self.tuner.max_ring_size < self.parameters.target_ring_size:
            errors.append("max_ring_size is below the initial target_ring_size")

        if self.tuner.workers < 1:
            errors.append("workers must be at least 1")

        if not 0.0 <= self.tuner.leakage_floor <= 1.0:
            errors.append("leakage_floor must lie in [0, 1]")

        return errors

    def to_dict(self) -> dict:
        return {
            "parameters": self.parameters.to_dict(),
            "tuner": asdict(self.tuner),
            "log": asdict(self.log),
            "backend": self.backend,
            "trust_anchors": list(self.trust_anchors),
            "seed": self.seed,
        }

    def save(self, path: str) -> None:
        """Save configuration to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def from_dict(cls, data: dict) -> ProtocolConfig:
        config = cls(
            backend=data.get("backend", "secp256k1"),
            trust_anchors=list(data.get("trust_anchors", ["ROOT1"])),
            seed=data.get("seed"),
        )

        if "parameters" in data:
            config.parameters = Parameters(**data["parameters"])

        if "tuner" in data:
            tuner = dict(data["tuner"])
            weights = tuner.pop("weights", None)
            config.tuner = TunerConfig(**tuner)
            if weights is not None:
                config.tuner.weights = LeakageWeights(**weights)

        if "log" in data:
            config.log = LogConfig(**data["log"])

        return config

    @classmethod
    def load(cls, path: str) -> ProtocolConfig:
        """Load configuration from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)

        config = cls.from_dict(data)
        logger.info(f"Configuration loaded from {path}")
        return config

    @classmethod
    def for_tests(cls, seed: int = 123, backend: str = "symbolic") -> ProtocolConfig:
        """Deterministic configuration for reproducible test runs."""
        return cls(backend=backend, seed=seed)


def configure_logging(log: LogConfig) -> None:
    """Install a handler for the ``abhrs`` logger hierarchy."""
    handler: logging.Handler
    if log.file:
        handler = logging.FileHandler(log.file)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(log.format))

    root = logging.getLogger("abhrs")
    root.setLevel(log.level.upper())
    root.handlers = [handler]
