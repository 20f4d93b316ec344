"""Tenant Attendance package.

Feature modules (tenants, attendance, corrections, scheduler, ...) with a thin
Flask controller layer on top of service/repository layers.
"""
