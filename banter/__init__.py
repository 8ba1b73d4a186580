"""Banter - conversation practice with AI personas."""
