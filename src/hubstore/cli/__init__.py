"""Command line interface for HubStore."""
