"""
Async Deleter Module
====================

Deletes independently listed batches of resources concurrently, retrying
the ones that fail while other deletions keep making progress.

Cloud resources often cannot be deleted while a sibling resource still
references them (a security group used by an instance, a VPC with a
subnet left in it). The deleter has no dependency graph. It re-attempts
the whole pending set each round and stops when everything is gone, when
a round deletes nothing new, or when the round limit is reached.

Classes
-------
DeleterConfig
    Concurrency and retry settings.
AttemptOutcome
    Result of a single delete attempt.
ResourceKey
    Type-qualified identifier of a resource in a report.
RunReport
    Final, immutable report of a run.
AttemptRunner
    One concurrent pass over a set of resources.
RetryScheduler
    Repeated passes over the resources not yet deleted.
ResultAggregator
    Builds the report and decides whether the run failed.
AsyncDeleter
    Entry points: ``run`` and ``run_type``.

Example
-------
>>> from leftovers.core.async_deleter import AsyncDeleter, DeleterConfig
>>> from leftovers.core.logger import Logger
>>>
>>> deleter = AsyncDeleter(Logger(), DeleterConfig(max_workers=10))
>>> try:
...     report = deleter.run(groups)
... except IncompleteDeletionError as e:
...     report = e.report
>>> print(f"Deleted {report.succeeded_count} resources")

Notes
-----
Rounds are strictly sequential; deletes within a round run in a
``ThreadPoolExecutor``. The pending set is only modified by the calling
thread, after every outcome of the round has been collected.

See Also
--------
leftovers.core.deletable : The Deletable contract.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
)

from leftovers.core.deletable import Deletable, ResourceGroup, flatten
from leftovers.core.exceptions import IncompleteDeletionError
from leftovers.core.logger import Logger

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 20
DEFAULT_MAX_ROUNDS = 2


@dataclass
class DeleterConfig:
    """
    Settings for a deletion run.

    Parameters
    ----------
    max_workers : int, default=20
        Maximum number of simultaneous delete calls.
    max_rounds : int, default=2
        Maximum number of passes, counting the first one. The default
        allows exactly one retry pass.
    retry_delay : float, default=0.0
        Seconds to wait before the first retry pass. Doubled for every
        further pass.

    Raises
    ------
    ValueError
        If a setting is out of range.
    """

    max_workers: int = DEFAULT_MAX_WORKERS
    max_rounds: int = DEFAULT_MAX_ROUNDS
    retry_delay: float = 0.0

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {self.max_rounds}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay cannot be negative, got {self.retry_delay}")


@dataclass
class AttemptOutcome:
    """
    Result of one delete attempt on one resource.

    Attributes:
        resource: The resource that was attempted
        succeeded: Whether ``delete()`` returned without raising
        error: The exception raised, if any
        round_number: Pass in which the attempt was made (1-based)
    """

    resource: Deletable
    succeeded: bool
    error: Optional[BaseException] = None
    round_number: int = 1


@dataclass
class ScheduleResult:
    """
    Raw output of the retry scheduler.

    Attributes:
        rounds: Outcomes of every pass, in pass order
        remaining: Last failed outcome of each resource still pending,
            in input order
    """

    rounds: List[List[AttemptOutcome]] = field(default_factory=list)
    remaining: List[AttemptOutcome] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return sum(len(outcomes) for outcomes in self.rounds)


class ResourceKey(NamedTuple):
    """Identifies a resource left behind; names are only unique per type."""

    resource_type: str
    name: str

    def __str__(self) -> str:
        return f"[{self.resource_type}: {self.name}]"


@dataclass(frozen=True)
class RunReport:
    """
    Final report of a deletion run.

    Parameters
    ----------
    succeeded : tuple of str
        Names of deleted resources, in the order they were confirmed
        (by pass, then by input order within a pass).
    failed : mapping of ResourceKey to exception
        Type and name of each resource left behind, with its most recent
        error. Resources of different types may share a name.
    rounds : int
        Number of passes that ran.
    attempts : int
        Total number of delete calls made.
    start_time : datetime
        When the run started.
    end_time : datetime
        When the run finished.
    """

    succeeded: Tuple[str, ...] = ()
    failed: Mapping[ResourceKey, BaseException] = field(default_factory=dict)
    rounds: int = 0
    attempts: int = 0
    start_time: datetime = field(default_factory=datetime.utcnow)
    end_time: datetime = field(default_factory=datetime.utcnow)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "succeeded": list(self.succeeded),
            "failed": [
                {
                    "name": key.name,
                    "resource_type": key.resource_type,
                    "error": str(error),
                }
                for key, error in self.failed.items()
            ],
            "succeeded_count": self.succeeded_count,
            "failed_count": self.failed_count,
            "rounds": self.rounds,
            "attempts": self.attempts,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }


class AttemptRunner:
    """
    Attempts to delete each resource of a pass exactly once, concurrently.

    Parameters
    ----------
    logger : Logger
        Receives one ``SUCCESS``/``ERROR`` line per resource.
    max_workers : int, default=20
        Maximum number of simultaneous delete calls.

    Notes
    -----
    Any exception but ``KeyboardInterrupt`` raised by one ``delete()`` is
    captured in that resource's outcome and never affects the other
    deletes of the pass. The runner never retries.
    """

    def __init__(self, logger: Logger, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        self.logger = logger
        self.max_workers = max_workers

    def run(
        self,
        resources: Sequence[Deletable],
        round_number: int = 1,
    ) -> List[AttemptOutcome]:
        """
        Delete every resource once.

        Parameters
        ----------
        resources : sequence of Deletable
            Resources to attempt.
        round_number : int, default=1
            Recorded on each outcome.

        Returns
        -------
        list of AttemptOutcome
            One outcome per resource, in input order.

        Notes
        -----
        If the caller is interrupted while the pass is in flight, deletes
        that have not started are cancelled, deletes already running are
        allowed to finish, and the interrupt is re-raised.
        """
        if not resources:
            return []

        outcomes: List[Optional[AttemptOutcome]] = [None] * len(resources)
        workers = min(self.max_workers, len(resources))

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="leftovers-delete"
        ) as executor:
            futures = {
                executor.submit(self._attempt, resource, round_number): index
                for index, resource in enumerate(resources)
            }
            try:
                for future in as_completed(futures):
                    outcomes[futures[future]] = future.result()
            except BaseException:
                cancelled = sum(1 for f in futures if f.cancel())
                logger.warning(
                    f"Deletion pass interrupted; cancelled {cancelled} pending "
                    f"deletes, waiting for running ones to finish"
                )
                raise

        return outcomes  # type: ignore[return-value]

    def _attempt(self, resource: Deletable, round_number: int) -> AttemptOutcome:
        # Only an interrupt may escape; anything else, SystemExit from a
        # library included, belongs to this resource's outcome.
        try:
            resource.delete()
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            self.logger.printf(
                "ERROR deleting %s %s: %s",
                resource.resource_type,
                resource.name,
                e,
                style="red",
            )
            return AttemptOutcome(
                resource=resource,
                succeeded=False,
                error=e,
                round_number=round_number,
            )

        self.logger.printf(
            "SUCCESS deleting %s %s",
            resource.resource_type,
            resource.name,
            style="green",
        )
        return AttemptOutcome(resource=resource, succeeded=True, round_number=round_number)


class RetryScheduler:
    """
    Runs passes over the pending set until nothing more can be deleted.

    Parameters
    ----------
    runner : AttemptRunner
        Executes each pass.
    max_rounds : int, default=2
        Maximum number of passes, counting the first one.
    retry_delay : float, default=0.0
        Seconds to wait before the first retry; doubled per further retry.
    sleep : callable, optional
        Sleep function, ``time.sleep`` by default.

    Notes
    -----
    The loop stops when:

    1. the pending set is empty,
    2. a pass deletes nothing (fixed point: whatever remains is either
       permanently undeletable or blocked by something outside the run),
    3. ``max_rounds`` passes have run.

    A resource that succeeds leaves the pending set for good and is never
    attempted again.
    """

    def __init__(
        self,
        runner: AttemptRunner,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        retry_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runner = runner
        self.max_rounds = max_rounds
        self.retry_delay = retry_delay
        self._sleep = sleep

    def run(self, resources: Sequence[Deletable]) -> ScheduleResult:
        """
        Delete ``resources``, retrying failures while progress is made.

        Returns
        -------
        ScheduleResult
            Outcomes of every pass and the resources left pending.
        """
        # Keyed by input position: handles need not be hashable, and
        # resources of different types may share a name.
        pending: Dict[int, Deletable] = dict(enumerate(resources))
        last_failures: Dict[int, AttemptOutcome] = {}
        result = ScheduleResult()

        while pending and len(result.rounds) < self.max_rounds:
            round_number = len(result.rounds) + 1
            if round_number > 1 and self.retry_delay > 0:
                delay = self.retry_delay * 2 ** (round_number - 2)
                logger.debug(f"Waiting {delay:.1f}s before pass {round_number}")
                self._sleep(delay)

            indices = list(pending)
            logger.debug(f"Pass {round_number}: attempting {len(indices)} resources")
            outcomes = self.runner.run(
                [pending[index] for index in indices], round_number=round_number
            )
            result.rounds.append(outcomes)

            removed = 0
            for index, outcome in zip(indices, outcomes):
                if outcome.succeeded:
                    del pending[index]
                    last_failures.pop(index, None)
                    removed += 1
                else:
                    last_failures[index] = outcome

            logger.info(
                f"Pass {round_number}: deleted {removed}, {len(pending)} remaining"
            )

            if removed == 0:
                logger.debug(f"No progress in pass {round_number}; stopping")
                break

        result.remaining = [last_failures[index] for index in pending]
        return result


class ResultAggregator:
    """Turns scheduler output into a :class:`RunReport`."""

    def build(self, schedule: ScheduleResult, start_time: datetime) -> RunReport:
        succeeded = tuple(
            outcome.resource.name
            for outcomes in schedule.rounds
            for outcome in outcomes
            if outcome.succeeded
        )
        failed = {
            ResourceKey(outcome.resource.resource_type, outcome.resource.name): outcome.error
            for outcome in schedule.remaining
        }

        return RunReport(
            succeeded=succeeded,
            failed=failed,
            rounds=len(schedule.rounds),
            attempts=schedule.attempts,
            start_time=start_time,
            end_time=datetime.utcnow(),
        )

    @staticmethod
    def check(report: RunReport) -> RunReport:
        """
        Return ``report``, or raise if anything was left behind.

        Raises
        ------
        IncompleteDeletionError
            If ``report`` has failures.
        """
        if report.has_failures:
            raise IncompleteDeletionError(report)
        return report


class AsyncDeleter:
    """
    Deletes listed resources concurrently with bounded retries.

    Parameters
    ----------
    logger : Logger
        Receives the per-resource result lines.
    config : DeleterConfig, optional
        Concurrency and retry settings.
    sleep : callable, optional
        Sleep function used between passes.

    Examples
    --------
    Delete everything that was listed:

    >>> deleter = AsyncDeleter(Logger(no_confirm=True))
    >>> report = deleter.run([instances_group, security_groups_group])

    Delete only one type:

    >>> report = deleter.run_type(groups, "EC2 Volume")
    """

    def __init__(
        self,
        logger: Logger,
        config: Optional[DeleterConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.logger = logger
        self.config = config or DeleterConfig()
        self.runner = AttemptRunner(logger, max_workers=self.config.max_workers)
        self.scheduler = RetryScheduler(
            self.runner,
            max_rounds=self.config.max_rounds,
            retry_delay=self.config.retry_delay,
            sleep=sleep,
        )
        self.aggregator = ResultAggregator()

    def run(self, groups: Sequence[ResourceGroup]) -> RunReport:
        """
        Delete every resource of every group.

        Returns
        -------
        RunReport
            Report of a fully successful run.

        Raises
        ------
        IncompleteDeletionError
            If any resource remains after the retry policy ends. The
            exception carries the report.
        """
        return self._run(flatten(groups))

    def run_type(self, groups: Sequence[ResourceGroup], resource_type: str) -> RunReport:
        """
        Delete the resources of the groups whose type is ``resource_type``.

        Other groups are never attempted and are absent from the report.
        Dependencies on resources of other types are not resolved.

        Raises
        ------
        IncompleteDeletionError
            If any selected resource remains after the retry policy ends.
        """
        selected = [group for group in groups if group.resource_type == resource_type]
        return self._run(flatten(selected))

    def _run(self, resources: List[Deletable]) -> RunReport:
        start_time = datetime.utcnow()
        logger.info(f"Deleting {len(resources)} resources")

        schedule = self.scheduler.run(resources)
        report = self.aggregator.build(schedule, start_time)

        logger.info(
            f"Deletion complete: {report.succeeded_count} deleted, "
            f"{report.failed_count} failed in {report.rounds} passes"
        )
        return self.aggregator.check(report)

    def __repr__(self) -> str:
        return (
            f"AsyncDeleter(max_workers={self.config.max_workers}, "
            f"max_rounds={self.config.max_rounds})"
        )
