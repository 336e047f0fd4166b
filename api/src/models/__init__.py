"""Data models for the FastAPI service.

This package contains Pydantic models for request/response validation
and the records held by the repositories.
"""
