"""Top‑level package for the credit card repayment planner.

Turns PocketSmith budget events into a per-day planned spending map for
the NZ financial year and a schedule of monthly credit card repayments.
The primary modules are:

* ``fiscal_calendar`` – fiscal-year bounds and calendar-month periods
* ``proration`` – spreading recurring amounts evenly across days
* ``daily_spending`` – the per-day planned spending map
* ``repayments`` – billing periods, category breakdowns and headroom
* ``pocketsmith`` / ``event_cache`` – fetching and caching events
* ``cli`` – the console report
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run repayment_dashboard/dashboard.py
```
"""

from . import daily_spending  # noqa: F401  # re-exported for convenience
from . import repayments  # noqa: F401  # re-exported for convenience

__all__ = ["daily_spending", "repayments"]
