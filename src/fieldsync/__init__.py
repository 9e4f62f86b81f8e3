"""FieldSync back-office core.

This package is organized by feature modules (attendance, leaves, payroll, ...)
with a thin Flask controller layer over service/repository layers. All
persistence goes through a keyed record store (see ``fieldsync.store``).
"""
