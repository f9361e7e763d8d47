"""Pydantic schemas for notes, chat and sync endpoints."""
