"""LLM Visibility Tracker: brand position monitoring in LLM answers."""
