import datetime as dt

from croniter import croniter

DEFAULT_CLEANUP_SCHEDULE = "0 2 * * *"  # 02:00 UTC daily


def is_valid_schedule(expression: str) -> bool:
    """Check that expression is a five-field cron expression."""
    return len(expression.split()) == 5 and croniter.is_valid(expression)


def next_run_after(expression: str, now: dt.datetime | None = None) -> dt.datetime:
    """
    Return the next tick of a cron expression, strictly after now.

    Schedules are evaluated in UTC. A naive now is taken as UTC.
    """
    if now is None:
        now = dt.datetime.now(dt.timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)

    return croniter(expression, now).get_next(dt.datetime)


def seconds_until_next_run(expression: str, now: dt.datetime | None = None) -> float:
    if now is None:
        now = dt.datetime.now(dt.timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)

    return max(0.0, (next_run_after(expression, now) - now).total_seconds())
