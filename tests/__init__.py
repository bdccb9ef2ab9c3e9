"""
SQY Ping Backend Test Suite

This package contains all tests for the SQY Ping backend API.
Tests are organized into:
- unit/: Tests for the rule engine and the services
- integration/: Tests for API endpoints with a mocked database
- fixtures/: Reusable test data and federation payloads
"""
