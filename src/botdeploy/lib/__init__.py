"""Shared helpers for botdeploy."""
