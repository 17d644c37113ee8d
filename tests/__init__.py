"""
Test suite for imgvault.

This module contains all test cases for the application:
- Unit tests for models, services, configuration and admin tasks
- Integration tests that drive the HTTP API end to end
"""
