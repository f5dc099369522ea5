"""Command line interface for evsink."""
