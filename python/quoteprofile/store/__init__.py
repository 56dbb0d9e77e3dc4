"""quoteprofile storage layer.

Reads and writes the JSON settings file that holds a persisted profile.
Writes go through a temporary file that is atomically moved into place,
so a crash mid-write never corrupts the previous good copy.
"""
