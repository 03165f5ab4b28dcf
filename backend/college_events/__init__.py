"""
College events API.

A FastAPI service over Firestore for event listings, student registrations,
in-app notifications and email, plus the day-before reminder pass.
"""
