"""The per-album ledger: a JSON record of which Flickr photo was saved under which filename.

The file is rewritten in full after every change. A run that dies halfway leaves a ledger that
matches what was actually written to disk.
"""
import json
import logging
import os

from .general import SyncError


__all__ = ['Ledger', 'LedgerEntry']
logger = logging.getLogger(__name__)


class LedgerEntry():
    """Records that Flickr photo photo_id was saved to disk as filename."""
    def __init__(self, photo_id, title, filename):
        self.photo_id = photo_id
        self.title = title
        self.filename = filename

    def __repr__(self):
        return 'LedgerEntry({}, {}, {})'.format(self.photo_id, self.title, self.filename)

    def __eq__(self, other):
        if not isinstance(other, LedgerEntry):
            return NotImplemented
        return (self.photo_id, self.title, self.filename) == (
                other.photo_id, other.title, other.filename)

    @classmethod
    def fromDict(cls, d):
        return cls(d.get('PhotoId', ''), d.get('Title', ''), d.get('Filename', ''))

    def toDict(self):
        return {'PhotoId': self.photo_id, 'Title': self.title, 'Filename': self.filename}


class Ledger():
    """Entries for one album, kept in insertion order so rewrites produce small diffs."""
    def __init__(self, path, set_id, entries=None):
        self.path = path
        self.set_id = set_id
        self.entries = entries if entries is not None else []

    def __len__(self):
        return len(self.entries)

    @classmethod
    def load(cls, path, set_id):
        """Reads the ledger at path. A missing file gives an empty ledger for set_id, which is
        only written once something is added to it.
        """
        if not os.path.exists(path):
            logger.debug('No ledger at {}, starting an empty one'.format(path))
            return cls(path, set_id)

        with open(path, encoding='utf-8') as f:
            try:
                stored = json.load(f)
            except ValueError as e:
                raise SyncError('Ledger {} is not valid JSON: {}'.format(path, e))
        if not isinstance(stored, dict):
            raise SyncError('Ledger {} does not hold a JSON object'.format(path))
        entries = [LedgerEntry.fromDict(p) for p in stored.get('Photos') or []]
        logger.debug('Loaded {} ledger entries from {}'.format(len(entries), path))
        return cls(path, stored.get('SetId', set_id), entries)

    def save(self):
        doc = {
            'SetId': self.set_id,
            'Photos': [e.toDict() for e in self.entries],
        }
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(doc, f, indent=2)

    def photoIds(self):
        return {e.photo_id: e for e in self.entries}

    def filenames(self):
        return {e.filename: e for e in self.entries}

    def addOrUpdate(self, entry):
        """Updates the entry with the same photo_id in place, or appends a new one. Saves."""
        for existing in self.entries:
            if existing.photo_id == entry.photo_id:
                logger.debug('Updating existing ledger entry for {}'.format(entry.photo_id))
                existing.title = entry.title
                existing.filename = entry.filename
                break
        else:
            self.entries.append(LedgerEntry(entry.photo_id, entry.title, entry.filename))
        self.save()

    def removeById(self, photo_id):
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.photo_id != photo_id]
        if len(self.entries) != before:
            logger.info('Removing ID "{}" from the ledger.'.format(photo_id))
        self.save()

    def removeByFilename(self, filename):
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.filename != filename]
        if len(self.entries) != before:
            logger.info('Removing filename "{}" from the ledger.'.format(filename))
        self.save()
