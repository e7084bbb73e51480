"""Core configuration, security and static tables for the engagement engine."""
