"""
MBKM Placement Platform
Backend for the MBKM internship program.

Architecture:
- PostgreSQL: users, jobs, applications, reports, evaluations, master data
- FastAPI: REST API under /api/v1
"""

__version__ = "1.0.0"
