"""esmc-guard CLI commands."""
