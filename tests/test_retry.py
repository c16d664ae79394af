import pytest

from scenario_mcp.runtime.retry import RetryExecution, RetryPolicy, RetryState, retry, should_retry


class Flaky:
    def __init__(self, failures: int, result: str = "ok") -> None:
        self.failures = failures
        self.result = result
        self.calls = 0
        self.raised: list[Exception] = []

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            exc = RuntimeError(f"boom {self.calls}")
            self.raised.append(exc)
            raise exc
        return self.result


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def test_should_retry_when_error_and_below_limit() -> None:
    assert should_retry(step_attempt=1, max_attempts=2, has_error=True)


def test_should_not_retry_when_no_error() -> None:
    assert not should_retry(step_attempt=1, max_attempts=2, has_error=False)


def test_should_not_retry_when_limit_reached() -> None:
    assert not should_retry(step_attempt=2, max_attempts=2, has_error=True)


def test_policy_defaults_and_validation() -> None:
    policy = RetryPolicy()
    assert policy.max_attempts == 3
    assert policy.delay_ms == 1000
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(delay_ms=-1)


@pytest.mark.asyncio
async def test_fails_twice_then_succeeds_on_third_attempt() -> None:
    sleep = RecordingSleep()
    operation = Flaky(failures=2, result="done")
    execution = RetryExecution(RetryPolicy(max_attempts=3, delay_ms=1000), sleep=sleep)

    assert execution.state is RetryState.IDLE
    assert await execution.run(operation) == "done"
    assert execution.attempts_made == 3
    assert execution.state is RetryState.SUCCESS
    assert sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_always_failing_reraises_last_error_after_max_attempts() -> None:
    sleep = RecordingSleep()
    operation = Flaky(failures=10)
    execution = RetryExecution(RetryPolicy(max_attempts=3, delay_ms=250), sleep=sleep)

    with pytest.raises(RuntimeError) as excinfo:
        await execution.run(operation)

    assert operation.calls == 3
    assert excinfo.value is operation.raised[-1]
    assert execution.attempts_made == 3
    assert execution.last_error is operation.raised[-1]
    assert execution.state is RetryState.EXHAUSTED
    assert sleep.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_first_attempt_success_does_not_wait() -> None:
    sleep = RecordingSleep()
    operation = Flaky(failures=0)
    execution = RetryExecution(RetryPolicy(), sleep=sleep)

    assert await execution.run(operation) == "ok"
    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_single_attempt_policy_never_retries() -> None:
    operation = Flaky(failures=1)
    with pytest.raises(RuntimeError):
        await RetryExecution(RetryPolicy(max_attempts=1, delay_ms=0)).run(operation)
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_plain_callables_are_supported() -> None:
    calls = []

    def operation() -> int:
        calls.append(1)
        if len(calls) < 2:
            raise ValueError("not yet")
        return 42

    assert await retry(operation, RetryPolicy(max_attempts=3, delay_ms=0)) == 42
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_execution_runs_only_once() -> None:
    execution = RetryExecution(RetryPolicy(delay_ms=0))
    await execution.run(Flaky(failures=0))
    with pytest.raises(RuntimeError):
        await execution.run(Flaky(failures=0))
