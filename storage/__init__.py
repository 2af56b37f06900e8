"""
storage/ - Opportunity persistence.

Modules:
- opportunity_store: SQLite store for direct and triangular records
"""

from storage.opportunity_store import OpportunityStore

__all__ = ["OpportunityStore"]
