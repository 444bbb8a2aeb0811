"""Configuration and logging helpers shared by every MapFlam module."""
