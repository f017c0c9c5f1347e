"""User-friendly API for auto-investing.

Components:
- AutoInvestAPI: Facade over analysis, planning, execution and allocation storage
"""

from autoinvest.api.autoinvest_api import AutoInvestAPI

__all__ = ["AutoInvestAPI"]
