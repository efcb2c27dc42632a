"""
Finance Desk - Source Package

Back office of a small finance/CRM system: sortable tables over remote
collections (balance audit, status history, lead sources) and a relay
to a Gemini-backed financial assistant.

DESIGN PRINCIPLES:
1. Sort state is a value; every header click derives a fresh query
2. The last request issued wins; stale results are dropped on arrival
3. Fail visibly: every failure reaches the caller as a tagged error
4. Every remote read and write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Desk Team"
