# JobTrack - Personal Job Application Tracker
# Version 0.1.0

"""
JobTrack keeps a per-user table of job applications.

Layers:
1. Store - owner-partitioned job records (SQLAlchemy)
2. API - FastAPI CRUD routes behind bearer-token auth
3. Filters - pure per-field matching over the record list
4. Client - HTTP client and the board state container used by the CLI
"""

__version__ = "0.1.0"
