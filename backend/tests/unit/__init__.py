"""
Unit Tests

Unit tests run without external services. The database session and the
execution harness are mocked where a test does not need them; harness
tests start local runtime processes.
"""
