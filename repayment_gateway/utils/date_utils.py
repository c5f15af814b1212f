"""Date manipulation utilities"""

from datetime import date, timedelta
from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """
    Add calendar months, overflowing days past the end of the target month.

    The day-of-month is carried over as an offset from the first of the
    target month, so Jan 31 + 1 month is Mar 2 in a leap year (Mar 3 otherwise)
    rather than the last day of February.
    """
    first_of_target = from_date.replace(day=1) + relativedelta(months=months)
    return first_of_target + timedelta(days=from_date.day - 1)
