"""
Route-level tests for the taskboard frontend.

Tests use the Flask test client with the backend stubbed at the
``requests.request`` boundary and cover:
- Login, registration, logout and guard redirects
- Task list, forms and image handling
- The admin console
"""
