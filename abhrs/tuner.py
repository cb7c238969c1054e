"""
Adversarial co-design of the parameter vector θ.

A bounded-round feedback controller.  Each round:

1. simulate — sign every workload item under the current θ snapshot
   (items are independent and run on a thread pool; aggregation waits for
   all of them);
2. score leakage per transcript on three axes (attribute, policy,
   anonymity set) and average each axis over the round;
3. combine the axes with fixed weights into L;
4. evaluate the cost C(θ);
5. let the update rule propose the next θ.

The loop stops after a fixed number of rounds, not on convergence.  The
reference pieces (leakage falling linearly with ring size down to a
floor, cost equal to ring size, hill-climbing by one ring member while
C < C_max) are placeholders for a real black-box optimiser; each is a
pluggable strategy.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .config import LeakageWeights, ParameterStore, Parameters, TunerConfig
from .signer import SignatureTranscript

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkloadItem:
    message: str
    policy: Callable[[Mapping[str, Any]], bool]


def workload_from(
    messages: Sequence[str],
    policy: Callable[[Mapping[str, Any]], bool],
) -> List[WorkloadItem]:
    return [WorkloadItem(message=m, policy=policy) for m in messages]


Simulation = Callable[[Parameters, WorkloadItem], SignatureTranscript]


# ── strategies ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LeakageScore:
    attribute: float
    policy: float
    anonymity: float


class LeakageModel(ABC):
    @abstractmethod
    def score(self, transcript: SignatureTranscript, parameters: Parameters) -> LeakageScore:
        ...


class RingSizeLeakage(LeakageModel):
    """max(floor, 1 − slope·|R|) on every axis."""

    def __init__(self, floor: float = 0.1, slope: float = 0.05) -> None:
        self.floor = floor
        self.slope = slope

    def score(self, transcript, parameters):
        value = max(self.floor, 1.0 - self.slope * len(transcript.ring))
        return LeakageScore(attribute=value, policy=value, anonymity=value)


class CostModel(ABC):
    @abstractmethod
    def cost(self, parameters: Parameters) -> float:
        ...


class RingSizeCost(CostModel):
    def cost(self, parameters):
        return float(parameters.target_ring_size)


class UpdateRule(ABC):
    @abstractmethod
    def update(
        self,
        parameters: Parameters,
        leakage: float,
        cost: float,
        cost_budget: float,
    ) -> Parameters:
        ...


class HillClimbRule(UpdateRule):
    """Grow the ring by one while under budget, never past ``max_ring_size``."""

    def __init__(self, max_ring_size: int = 10) -> None:
        if max_ring_size < 0:
            raise ValueError("max_ring_size must be non-negative")
        self.max_ring_size = max_ring_size

    def update(self, parameters, leakage, cost, cost_budget):
        if cost >= cost_budget:
            return parameters
        size = min(parameters.target_ring_size + 1, self.max_ring_size)
        if size <= parameters.target_ring_size:
            return parameters
        return parameters.with_ring_size(size)


# ── one round ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RoundReport:
    round_index: int
    parameters: Parameters
    attribute: float
    policy: float
    anonymity: float
    leakage: float
    cost: float
    transcripts: int


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def evaluate_round(
    parameters: Parameters,
    workload: Sequence[WorkloadItem],
    simulate: Simulation,
    leakage_model: LeakageModel,
    cost_model: CostModel,
    weights: LeakageWeights,
    executor: Optional[Executor] = None,
    round_index: int = 0,
) -> RoundReport:
    """Simulate and score one round under a fixed θ snapshot."""
    if executor is None:
        transcripts = [simulate(parameters, item) for item in workload]
    else:
        transcripts = list(executor.map(lambda item: simulate(parameters, item), workload))

    scores = [leakage_model.score(t, parameters) for t in transcripts]
    attribute = _mean([s.attribute for s in scores])
    policy = _mean([s.policy for s in scores])
    anonymity = _mean([s.anonymity for s in scores])

    return RoundReport(
        round_index=round_index,
        parameters=parameters,
        attribute=attribute,
        policy=policy,
        anonymity=anonymity,
        leakage=weights.combine(attribute, policy, anonymity),
        cost=cost_model.cost(parameters),
        transcripts=len(transcripts),
    )


def run_codesign_round(
    theta: Parameters,
    workload: Sequence[WorkloadItem],
    cost_budget: float,
    *,
    simulate: Simulation,
    leakage_model: Optional[LeakageModel] = None,
    cost_model: Optional[CostModel] = None,
    update_rule: Optional[UpdateRule] = None,
    weights: Optional[LeakageWeights] = None,
    executor: Optional[Executor] = None,
) -> Parameters:
    """One tuning round with the reference strategies as defaults."""
    report = evaluate_round(
        theta, workload, simulate,
        leakage_model or RingSizeLeakage(),
        cost_model or RingSizeCost(),
        weights or LeakageWeights(),
        executor,
    )
    rule = update_rule or HillClimbRule()
    return rule.update(theta, report.leakage, report.cost, cost_budget)


# ── tuner ───────────────────────────────────────────────────────────────

@dataclass
class TuningResult:
    parameters: Parameters
    history: List[RoundReport] = field(default_factory=list)

    @property
    def ring_sizes(self) -> List[int]:
        """θ's ring size at the start of each round."""
        return [r.parameters.target_ring_size for r in self.history]


class CoDesignTuner:
    """
    Runs a fixed number of co-design rounds.

    When a ``ParameterStore`` is given the tuner publishes each new θ to it
    after the round completes; it is the store's only writer.
    """

    def __init__(
        self,
        simulate: Simulation,
        config: Optional[TunerConfig] = None,
        *,
        leakage_model: Optional[LeakageModel] = None,
        cost_model: Optional[CostModel] = None,
        update_rule: Optional[UpdateRule] = None,
        store: Optional[ParameterStore] = None,
    ) -> None:
        self.config = config or TunerConfig()
        self._simulate = simulate
        self._leakage = leakage_model or RingSizeLeakage(
            floor=self.config.leakage_floor, slope=self.config.leakage_slope,
        )
        self._cost = cost_model or RingSizeCost()
        self._rule = update_rule or HillClimbRule(self.config.max_ring_size)
        self._store = store

    def run(
        self,
        theta: Parameters,
        workload: Sequence[WorkloadItem],
        rounds: Optional[int] = None,
        cost_budget: Optional[float] = None,
    ) -> TuningResult:
        rounds = self.config.max_rounds if rounds is None else rounds
        budget = self.config.cost_budget if cost_budget is None else cost_budget
        result = TuningResult(parameters=theta)

        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            for r in range(1, rounds + 1):
                report = evaluate_round(
                    theta, workload, self._simulate, self._leakage, self._cost,
                    self.config.weights, pool, round_index=r,
                )
                result.history.append(report)
                logger.info(
                    "round %d: ring_size=%d L=%.3f C=%.1f",
                    r, theta.target_ring_size, report.leakage, report.cost,
                )
                theta = self._rule.update(theta, report.leakage, report.cost, budget)
                if self._store is not None:
                    self._store.publish(theta)

        result.parameters = theta
        return result
