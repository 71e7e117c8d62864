"""Provisioning of the axels executable: platform naming, lookup and download."""
