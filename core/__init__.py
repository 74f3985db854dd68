"""Core application for the clinical backend.

This package contains models, serializers, views, notification drivers
and route registrations for the ``/api/v1`` REST API.
"""
