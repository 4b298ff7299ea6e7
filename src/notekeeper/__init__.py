"""NoteKeeper — multi-tenant note-taking API.

Users register, receive a bearer credential, and manage the notes they own.
Every note route runs behind an ownership check tying the credential's
subject to the user id in the path.
"""

__version__ = "0.1.0"
