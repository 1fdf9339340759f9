"""
Field-Sales Workforce Kernel

The daily workforce state machine and payout computation engine for a
door-to-door field-sales operation:
- Booking pipeline per worker (today / next day / calendar / sinks)
- Attendance finalization (the daily no-show lock)
- Route-manager and cart assignment
- Day-boundary rollover with archival of the prior day
- Net sales, equivalents and pluggable commission
"""

__version__ = "0.1.0"
