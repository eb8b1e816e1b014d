"""
GRC Access Identity Store
=========================
Users, roles, and role assignments (Django app). Import models and the
service module directly once the app registry is ready.
"""
