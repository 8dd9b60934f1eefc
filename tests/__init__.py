"""
Test suite for the taskboard frontend.

This package contains:
- unit/: pure logic (route guard, derived views, managers, gateway client)
- integration/: HTML routes through the Flask test client
- contracts/: consumer checks against the backend OpenAPI document
- security/: cookie hardening and output encoding
"""
