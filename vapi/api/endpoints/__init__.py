"""
API Endpoints Package
=====================

Available endpoints:
- webhooks: VAPI server-message callbacks and receiver health
"""
