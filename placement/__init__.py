"""
Placement Drive Management System
Campus placement API: students, company drives, enrollments, eligibility and analytics.

Architecture:
- MongoDB: all placement documents (students, drives, enrollments, users)
- Identity provider: issues the Bearer tokens this service verifies
- OpenAI-compatible LLM: ATS scoring of resume text only
"""

__version__ = "2.0.0"
