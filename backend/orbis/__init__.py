"""Orbis practice backend: spaced-repetition scheduling and code execution."""
