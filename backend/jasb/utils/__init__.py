"""Small shared helpers."""

from jasb.utils.time_utils import as_utc, utc_now

__all__ = ["as_utc", "utc_now"]
