"""Warden: data-integrity and user-lifecycle core of the admin backend."""
