"""Exception hierarchy for quoteprofile.

Every error raised by the profile core derives from ``ProfileError`` so
callers (the terminal UI, the refresh scheduler, the sidecar) can catch
one type. None of these terminate the process.
"""

from __future__ import annotations


class ProfileError(Exception):
    """Base class for all profile errors."""


class ResourceUnreadable(ProfileError):
    """The settings file is missing or cannot be read.

    ``Profile.load`` handles this by falling back to the default profile.
    """


class DecodeError(ProfileError, ValueError):
    """The settings file exists but its content is malformed."""


class WriteError(ProfileError, OSError):
    """The settings file could not be written.

    The in-memory change that triggered the write is kept, so a later
    ``save()`` can be retried.
    """


class FilterCompileError(ProfileError, ValueError):
    """A filter expression could not be parsed."""


class FilterEvaluationError(ProfileError, ValueError):
    """A compiled filter could not be evaluated against a quote row."""
