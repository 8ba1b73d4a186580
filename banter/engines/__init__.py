"""Engines - conversation mechanics that sit between the store and the API."""
