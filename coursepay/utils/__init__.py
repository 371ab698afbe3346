"""CoursePay Utility Functions.

Common helper functions and utilities used across the application.
"""

from coursepay.utils.amount import from_minor_units, quantize_amount, to_minor_units
from coursepay.utils.helpers import utc_now

__all__ = [
    "from_minor_units",
    "quantize_amount",
    "to_minor_units",
    "utc_now",
]
