"""botdeploy CLI commands."""
