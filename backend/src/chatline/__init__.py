"""Chatline realtime core."""
