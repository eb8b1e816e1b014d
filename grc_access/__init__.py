"""
GRC Access Core
===============
Permission resolution, account security, and SAML federation for the
GRC platform. HTTP routing and admin screens live outside this package.
"""
