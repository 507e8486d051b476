"""
Greyn Eco Platform.

Multi-portal backend (NGO, corporate, carbon marketplace, investor, admin)
plus the client-side session, guard and list helpers that drive it.
"""
