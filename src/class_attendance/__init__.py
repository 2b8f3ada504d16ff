"""Class Attendance package.

This package is organized by feature modules (schedules, sessions, attendance,
reports, ...) with a thin Flask controller layer and service/repository layers.
"""
