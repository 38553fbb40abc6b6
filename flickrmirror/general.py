"""Common definitions."""


__all__ = ['LEDGER_FILENAME', 'NO_SET_TITLE', 'SyncError', 'VERSION']


VERSION = '0.3.0'  # The canonical version definition.


# Name of the per-album ledger file. It lives next to the media it describes.
LEDGER_FILENAME = 'metadata.json'

# Directory and title used for photos that aren't in any album.
NO_SET_TITLE = 'NO-SET'


# Custom exception class used to terminate execution.
class SyncError(Exception):
    pass
