"""
Elevora billing core - Clerk identity sync, Stripe billing state and plan entitlements
"""
