"""
Routes package for the taskboard frontend.

This package contains route blueprints:
- views: login/registration, the user's task pages and the profile picture
- admin: the admin console (dashboard, users, all tasks)
"""
