"""Pydantic schemas for report inputs and outputs."""
