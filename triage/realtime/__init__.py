"""Channels consumers, routing and broadcast helpers for live updates."""
