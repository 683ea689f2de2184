"""Version requirement parsing and semver compatibility classes."""
