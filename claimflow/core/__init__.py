"""claimflow core platform module.

- Database repositories base
- Logging and API utilities
- Approval decision engine and its HTTP surface
"""
