from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage representation)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_to_utc(local_dt: datetime) -> datetime:
    # naive datetimes are taken as server local time by astimezone()
    return local_dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(utc_dt: datetime) -> datetime:
    return utc_dt.replace(tzinfo=timezone.utc).astimezone().replace(tzinfo=None)


def current_month_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """[first day of month 00:00, first day of next month 00:00) in server local time,
    returned as naive UTC bounds."""
    local_now = utc_to_local(now or utcnow())
    start = datetime(local_now.year, local_now.month, 1)
    if local_now.month == 12:
        end = datetime(local_now.year + 1, 1, 1)
    else:
        end = datetime(local_now.year, local_now.month + 1, 1)
    return local_to_utc(start), local_to_utc(end)


def start_of_year(now: Optional[datetime] = None) -> datetime:
    """January 1st 00:00 of the current year in server local time, as naive UTC."""
    local_now = utc_to_local(now or utcnow())
    return local_to_utc(datetime(local_now.year, 1, 1))


def date_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d")


def month_key(dt: datetime) -> str:
    return f"{dt.year}-{dt.month:02d}"


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


def day_end(d: date) -> datetime:
    # 23:59:59.999, same precision as the upper bound the API documents
    return datetime.combine(d, time.min) + timedelta(days=1) - timedelta(milliseconds=1)
