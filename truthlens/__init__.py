"""
TruthLens entitlement service: access codes, access requests, scan quotas
and upload validation.
"""
