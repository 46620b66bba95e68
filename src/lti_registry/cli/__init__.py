"""Admin CLI for the LTI tool registry."""
