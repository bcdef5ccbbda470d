"""Business logic services for MedTrack.

Subpackages are imported explicitly by callers.
"""
