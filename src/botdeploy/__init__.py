"""botdeploy: deploy bot repositories as resource-limited containers."""

__version__ = "1.0.0"
