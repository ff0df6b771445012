"""LogicMonitor API client.

Client library for the LogicMonitor REST API: LMv1 request signing, API
version routing, filter encoding, paging, and rate-limit aware retries.
"""

__version__ = "0.1.0"
