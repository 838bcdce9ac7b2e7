"""Recruiting CRM API: CV import, duplicate detection and candidate merge."""
