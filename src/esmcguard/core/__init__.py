"""Core verification logic: root discovery, license validation, package integrity."""
