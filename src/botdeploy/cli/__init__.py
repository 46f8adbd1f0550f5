"""Command line interface for botdeploy."""
