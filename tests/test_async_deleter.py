"""
Tests for the Async Deleter.
"""

import random
import sys
import threading

import pytest

from fakes import FakeDeletable, Interrupting, fakes
from leftovers.core.async_deleter import (
    AsyncDeleter,
    AttemptRunner,
    DeleterConfig,
    ResourceKey,
    ResultAggregator,
    RetryScheduler,
    RunReport,
    ScheduleResult,
)
from leftovers.core.deletable import ResourceGroup
from leftovers.core.exceptions import IncompleteDeletionError


def group(*resources, resource_type="Fake Resource"):
    return ResourceGroup(resource_type, resources)


@pytest.fixture
def deleter(logger):
    """AsyncDeleter with the default configuration."""
    return AsyncDeleter(logger)


class TestDeleterConfig:
    """Tests for DeleterConfig."""

    def test_defaults(self):
        """Test default settings allow exactly one retry pass."""
        config = DeleterConfig()
        assert config.max_workers == 20
        assert config.max_rounds == 2
        assert config.retry_delay == 0.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_workers": 0},
            {"max_rounds": 0},
            {"retry_delay": -1.0},
        ],
    )
    def test_invalid_settings(self, kwargs):
        """Test out-of-range settings are rejected."""
        with pytest.raises(ValueError):
            DeleterConfig(**kwargs)


class TestAttemptRunner:
    """Tests for a single concurrent pass."""

    def test_empty_pass(self, logger):
        """Test a pass over nothing returns nothing."""
        assert AttemptRunner(logger).run([]) == []

    def test_outcomes_in_input_order(self, logger):
        """Test outcomes follow input order, not completion order."""
        resources = [
            FakeDeletable("slow", delay=0.05),
            FakeDeletable("fast"),
            FakeDeletable("broken", always_fail=True),
        ]

        outcomes = AttemptRunner(logger).run(resources, round_number=3)

        assert [o.resource.name for o in outcomes] == ["slow", "fast", "broken"]
        assert [o.succeeded for o in outcomes] == [True, True, False]
        assert all(o.round_number == 3 for o in outcomes)
        assert isinstance(outcomes[2].error, RuntimeError)

    def test_failure_does_not_affect_others(self, logger):
        """Test one raising delete leaves the rest of the pass untouched."""
        resources = [FakeDeletable("bad", always_fail=True)] + fakes("a", "b", "c")

        AttemptRunner(logger).run(resources)

        assert all(r.attempts == 1 for r in resources)
        assert [r.deleted for r in resources] == [False, True, True, True]

    def test_deletes_run_concurrently(self, logger):
        """Test deletes of one pass overlap in time."""
        barrier = threading.Barrier(5, timeout=5)
        resources = fakes(
            "a", "b", "c", "d", "e", before_delete=lambda _: barrier.wait()
        )

        outcomes = AttemptRunner(logger, max_workers=5).run(resources)

        assert all(o.succeeded for o in outcomes)

    def test_logs_each_attempt(self, logger, console):
        """Test one SUCCESS or ERROR line per resource."""
        resources = [FakeDeletable("kept", always_fail=True), FakeDeletable("gone")]

        AttemptRunner(logger).run(resources)

        output = console.file.getvalue()
        assert "ERROR deleting Fake Resource kept: kept failed on attempt 1" in output
        assert "SUCCESS deleting Fake Resource gone" in output

    def test_system_exit_is_a_failed_attempt(self, logger):
        """Test only an interrupt escapes a pass; SystemExit is recorded."""
        exiting = FakeDeletable("exiting", before_delete=lambda _: sys.exit(3))
        others = fakes("a", "b")

        outcomes = AttemptRunner(logger).run([exiting] + others)

        assert [o.succeeded for o in outcomes] == [False, True, True]
        assert isinstance(outcomes[0].error, SystemExit)
        assert all(r.deleted for r in others)

    def test_interrupt_cancels_pending_deletes(self, logger):
        """Test an interrupt cancels queued deletes and is re-raised."""
        queued = fakes(*[f"queued-{i}" for i in range(10)], delay=0.05)
        resources = [Interrupting("stop")] + queued

        with pytest.raises(KeyboardInterrupt):
            AttemptRunner(logger, max_workers=1).run(resources)

        assert sum(r.attempts for r in queued) <= 1


class TestRetryScheduler:
    """Tests for the retry loop."""

    def test_single_pass_when_all_succeed(self, logger):
        """Test no retry pass runs when the first one clears everything."""
        scheduler = RetryScheduler(AttemptRunner(logger), max_rounds=5)

        result = scheduler.run(fakes("a", "b"))

        assert len(result.rounds) == 1
        assert result.remaining == []
        assert result.attempts == 2

    def test_stops_at_fixed_point(self, logger):
        """Test a pass that deletes nothing ends the run."""
        stuck = FakeDeletable("stuck", always_fail=True)
        scheduler = RetryScheduler(AttemptRunner(logger), max_rounds=10)

        result = scheduler.run([stuck])

        assert len(result.rounds) == 1
        assert stuck.attempts == 1
        assert [o.resource for o in result.remaining] == [stuck]

    def test_stops_at_max_rounds(self, logger):
        """Test the pass limit ends a run that keeps making progress."""
        resources = [FakeDeletable(f"r{i}", failures=i) for i in range(5)]
        scheduler = RetryScheduler(AttemptRunner(logger), max_rounds=3)

        result = scheduler.run(resources)

        assert len(result.rounds) == 3
        assert [o.resource.name for o in result.remaining] == ["r3", "r4"]
        assert [r.attempts for r in resources] == [1, 2, 3, 3, 3]

    def test_retry_delay_doubles(self, logger):
        """Test the wait before each retry pass doubles."""
        slept = []
        resources = [FakeDeletable(f"r{i}", failures=i) for i in range(4)]
        scheduler = RetryScheduler(
            AttemptRunner(logger), max_rounds=4, retry_delay=1.5, sleep=slept.append
        )

        scheduler.run(resources)

        assert slept == [1.5, 3.0, 6.0]

    def test_no_sleep_without_delay(self, logger):
        """Test no sleep happens with a zero retry delay."""
        slept = []
        scheduler = RetryScheduler(
            AttemptRunner(logger), max_rounds=2, sleep=slept.append
        )

        scheduler.run([FakeDeletable("a"), FakeDeletable("b", failures=1)])

        assert slept == []

    def test_equal_names_of_different_types_tracked_separately(self, logger):
        """Test resources sharing a name are retried independently."""
        first = FakeDeletable("shared", resource_type="Type A")
        second = FakeDeletable("shared", resource_type="Type B", failures=1)
        scheduler = RetryScheduler(AttemptRunner(logger), max_rounds=2)

        result = scheduler.run([first, second])

        assert first.attempts == 1
        assert second.attempts == 2
        assert result.remaining == []

    def test_remaining_keeps_last_error(self, logger):
        """Test the most recent error is kept for resources left behind."""
        stuck = FakeDeletable("stuck", always_fail=True)
        scheduler = RetryScheduler(AttemptRunner(logger), max_rounds=2)

        result = scheduler.run([stuck, FakeDeletable("other")])

        assert str(result.remaining[0].error) == "stuck failed on attempt 2"
        assert result.remaining[0].round_number == 2


class TestResultAggregator:
    """Tests for report building."""

    def test_build_report(self, logger):
        """Test counts, names and types are collected from the schedule."""
        ok = FakeDeletable("ok")
        bad = FakeDeletable("bad", resource_type="EC2 Volume", always_fail=True)
        schedule = RetryScheduler(AttemptRunner(logger)).run([ok, bad])
        start = RunReport().start_time

        report = ResultAggregator().build(schedule, start)

        assert report.succeeded == ("ok",)
        assert list(report.failed) == [ResourceKey("EC2 Volume", "bad")]
        assert report.rounds == 2
        assert report.attempts == 3
        assert report.end_time >= report.start_time

    def test_check_passes_clean_report(self):
        """Test a report without failures is returned as is."""
        report = RunReport(succeeded=("a",), rounds=1, attempts=1)
        assert ResultAggregator.check(report) is report

    def test_check_raises_on_failures(self):
        """Test a report with failures raises IncompleteDeletionError."""
        report = RunReport(
            failed={ResourceKey("EC2 Volume", "vol-1"): RuntimeError("in use")},
        )
        with pytest.raises(IncompleteDeletionError) as exc_info:
            ResultAggregator.check(report)

        assert exc_info.value.report is report
        assert str(exc_info.value) == "Failed to delete 1 resource: [EC2 Volume: vol-1]"

    def test_empty_schedule(self):
        """Test an empty run reports zero passes."""
        report = ResultAggregator().build(ScheduleResult(), RunReport().start_time)
        assert report.rounds == 0
        assert not report.has_failures


class TestRunReport:
    """Tests for RunReport."""

    def test_to_dict(self):
        """Test converting a report to a dictionary."""
        report = RunReport(
            succeeded=("a", "b"),
            failed={ResourceKey("EC2 Subnet", "c"): RuntimeError("boom")},
            rounds=2,
            attempts=4,
        )
        data = report.to_dict()

        assert data["succeeded"] == ["a", "b"]
        assert data["failed"] == [
            {"name": "c", "resource_type": "EC2 Subnet", "error": "boom"}
        ]
        assert data["succeeded_count"] == 2
        assert data["failed_count"] == 1
        assert data["rounds"] == 2
        assert "start_time" in data

    def test_is_immutable(self):
        """Test report fields cannot be reassigned."""
        report = RunReport()
        with pytest.raises(AttributeError):
            report.rounds = 3


class TestAsyncDeleter:
    """Tests for the deletion entry points."""

    @pytest.mark.parametrize("group_count", [1, 2, 3])
    def test_all_succeed(self, deleter, group_count):
        """Test every resource is deleted once in one pass, in any grouping."""
        resources = fakes(*[f"r{i}" for i in range(12)])
        random.Random(group_count).shuffle(resources)
        size = len(resources) // group_count
        groups = [
            group(*resources[i * size:(i + 1) * size]) for i in range(group_count)
        ]

        report = deleter.run(groups)

        assert sorted(report.succeeded) == sorted(r.name for r in resources)
        assert report.failed_count == 0
        assert report.rounds == 1
        assert all(r.attempts == 1 for r in resources)

    def test_empty_run(self, deleter):
        """Test a run over nothing succeeds without passes."""
        report = deleter.run([group()])
        assert report.succeeded_count == 0
        assert report.rounds == 0

    def test_always_failing_resource_named_in_error(self, deleter):
        """Test an undeletable resource is reported and not retried past the fixed point."""
        stuck = FakeDeletable("stuck", always_fail=True)
        others = fakes("a", "b")

        with pytest.raises(IncompleteDeletionError) as exc_info:
            deleter.run([group(stuck, *others)])

        report = exc_info.value.report
        assert "[Fake Resource: stuck]" in str(exc_info.value)
        assert [key.name for key in report.failed] == ["stuck"]
        assert sorted(report.succeeded) == ["a", "b"]
        assert stuck.attempts == 2

    def test_alone_failing_resource_attempted_once(self, deleter):
        """Test a first pass without progress is the last pass."""
        stuck = FakeDeletable("stuck", always_fail=True)

        with pytest.raises(IncompleteDeletionError):
            deleter.run([group(stuck)])

        assert stuck.attempts == 1

    def test_deleted_resources_never_retried(self, logger):
        """Test a resource leaves the pending set for good once deleted."""
        resources = [FakeDeletable(f"r{i}", failures=i % 3) for i in range(9)]
        deleter = AsyncDeleter(logger, DeleterConfig(max_rounds=5))

        report = deleter.run([group(*resources)])

        for r in resources:
            assert r.attempts == r.failures + 1
        assert report.succeeded_count == 9
        assert len(set(report.succeeded)) == 9

    def test_dependency_resolved_in_two_rounds(self, deleter):
        """Test a resource blocked by another one in the run goes in pass two."""
        first_attempt = threading.Event()
        dependency = FakeDeletable("b", before_delete=lambda _: first_attempt.wait(5))

        def requires_dependency_gone(resource):
            if not dependency.deleted:
                first_attempt.set()
                raise RuntimeError("b still exists")

        dependent = FakeDeletable("a", before_delete=requires_dependency_gone)

        report = deleter.run(
            [group(dependent), group(dependency)]
        )

        assert report.rounds == 2
        assert dependent.attempts == 2
        assert dependency.attempts == 1
        assert report.succeeded == ("b", "a")

    def test_fixed_point_resource_attempted_max_rounds_times(self, logger):
        """Test a stuck resource is retried while others make progress."""
        stuck = FakeDeletable("c", always_fail=True)
        progress = [FakeDeletable(f"p{i}", failures=i) for i in range(3)]
        deleter = AsyncDeleter(logger, DeleterConfig(max_rounds=3))

        with pytest.raises(IncompleteDeletionError) as exc_info:
            deleter.run([group(stuck, *progress)])

        assert stuck.attempts == 3
        assert exc_info.value.report.rounds == 3
        assert [key.name for key in exc_info.value.report.failed] == ["c"]

    def test_many_resources_with_random_delays(self, logger):
        """Test every resource is attempted in the first pass and accounted for."""
        rng = random.Random(42)
        resources = [
            FakeDeletable(
                f"r{i}",
                delay=rng.uniform(0, 0.02),
                always_fail=rng.random() < 0.2,
            )
            for i in range(50)
        ]
        deleter = AsyncDeleter(logger, DeleterConfig(max_workers=8))

        try:
            report = deleter.run([group(*resources)])
        except IncompleteDeletionError as e:
            report = e.report

        assert all(r.attempts >= 1 for r in resources)
        assert report.succeeded_count + report.failed_count == 50
        failed_names = {key.name for key in report.failed}
        assert failed_names == {r.name for r in resources if r.always_fail}

    def test_equal_names_of_different_types_all_reported(self, deleter):
        """Test two failing resources sharing a name are both left behind."""
        role = FakeDeletable("ci-env", resource_type="IAM Role", always_fail=True)
        policy = FakeDeletable("ci-env", resource_type="IAM Policy", always_fail=True)

        with pytest.raises(IncompleteDeletionError) as exc_info:
            deleter.run(
                [
                    group(role, resource_type="IAM Role"),
                    group(policy, resource_type="IAM Policy"),
                ]
            )

        report = exc_info.value.report
        assert report.failed_count == 2
        assert list(report.failed) == [
            ResourceKey("IAM Role", "ci-env"),
            ResourceKey("IAM Policy", "ci-env"),
        ]
        assert str(exc_info.value) == (
            "Failed to delete 2 resources: [IAM Role: ci-env], [IAM Policy: ci-env]"
        )
        assert [f["resource_type"] for f in report.to_dict()["failed"]] == [
            "IAM Role",
            "IAM Policy",
        ]

    def test_run_type_only_attempts_selected_type(self, deleter):
        """Test run_type never touches other groups."""
        volumes = fakes("vol-1", "vol-2", resource_type="EC2 Volume")
        keys = fakes("key-1", resource_type="EC2 Key Pair")

        report = deleter.run_type(
            [
                group(*volumes, resource_type="EC2 Volume"),
                group(*keys, resource_type="EC2 Key Pair"),
            ],
            "EC2 Volume",
        )

        assert sorted(report.succeeded) == ["vol-1", "vol-2"]
        assert all(k.attempts == 0 for k in keys)

    def test_run_type_failure_excludes_other_types(self, deleter):
        """Test the error of a typed run only names the selected type."""
        volume = FakeDeletable("vol-1", resource_type="EC2 Volume", always_fail=True)
        key = FakeDeletable("key-1", resource_type="EC2 Key Pair", always_fail=True)

        with pytest.raises(IncompleteDeletionError) as exc_info:
            deleter.run_type(
                [
                    group(volume, resource_type="EC2 Volume"),
                    group(key, resource_type="EC2 Key Pair"),
                ],
                "EC2 Volume",
            )

        assert list(exc_info.value.report.failed) == [ResourceKey("EC2 Volume", "vol-1")]
        assert key.attempts == 0

    def test_repr(self, logger):
        """Test string representation."""
        deleter = AsyncDeleter(logger, DeleterConfig(max_workers=4, max_rounds=3))
        assert repr(deleter) == "AsyncDeleter(max_workers=4, max_rounds=3)"
