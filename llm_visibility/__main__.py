"""
Entry point for running LLM Visibility Tracker as a module.

Enables execution via:
    python -m llm_visibility [command] [options]

This is equivalent to running the installed CLI:
    llm-visibility [command] [options]
"""

from llm_visibility.cli import app

if __name__ == "__main__":
    app()
