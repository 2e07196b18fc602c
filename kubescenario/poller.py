import time

from .errors import ConditionError
from .functions import logger_scenario
from .types import PollResult


def wait_for(predicate, interval, timeout, clock=time.monotonic, sleep=time.sleep,
             fatal=(ConditionError,)) -> PollResult:
    """
    Evaluate predicate until it returns True or the timeout elapses.

    The first evaluation happens immediately, so a zero timeout still tries once.
    Sleeps never run past the deadline, so a predicate that never holds makes
    this return within timeout + interval.

    Args:
        predicate: Callable without arguments returning a bool
        interval: Seconds between evaluations
        timeout: Total seconds allowed
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests
        fatal: Exception types surfaced without retrying

    Returns:
        PollResult; ok is False on timeout and last_error holds the most recent error

    Raises:
        ConditionError: or any other fatal type raised by the predicate
    """
    if interval <= 0:
        raise ValueError(f"interval must be greater than zero, got {interval}")
    if timeout < 0:
        raise ValueError(f"timeout must not be negative, got {timeout}")

    result = PollResult()
    start = clock()
    while True:
        result.attempts += 1
        try:
            if predicate():
                result.ok = True
                break
        except fatal:
            raise
        except Exception as e:
            result.last_error = e
            logger_scenario.debug(f"Poll attempt {result.attempts} not satisfied: {e}")

        remaining = timeout - (clock() - start)
        if remaining <= 0:
            break
        sleep(min(interval, remaining))

    result.elapsed = clock() - start
    return result
