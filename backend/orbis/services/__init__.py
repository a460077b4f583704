"""Services package for spaced repetition scheduling and code execution."""
