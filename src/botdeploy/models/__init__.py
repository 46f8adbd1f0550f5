"""Pydantic models for botdeploy."""
