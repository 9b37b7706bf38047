"""
Core app for the SafraReport editorial back office.

Provides the error taxonomy, request tracing, role permissions, metrics and
health checks shared by the other apps.
"""
