"""
case_records — persistence and aggregation for clinical case records.

  models      — SQLAlchemy ORM table
  database    — async engine / session factory
  schemas     — pydantic domain models (validation boundary)
  repository  — CRUD + embedding bookkeeping
  statistics  — dashboard aggregations
"""
