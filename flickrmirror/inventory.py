"""Counting and duplicate detection over a local mirror. Purely local, no Flickr calls."""
import logging
import os

from .general import LEDGER_FILENAME
from .status import updateStatus


__all__ = ['countMediaFiles', 'findDupes', 'reportCount', 'reportDupes']
logger = logging.getLogger(__name__)


PHOTO_EXTENSIONS = ('.jpg', '.gif', '.png')
MOVIE_EXTENSIONS = ('.mov',)


def _walkFiles(root):
    for dir_path, dir_names, filenames in os.walk(root):
        dir_names.sort()
        for name in sorted(filenames):
            yield dir_path, name


def countMediaFiles(root):
    """Returns (photo_count, movie_count) for every media file under root."""
    photo_count = 0
    movie_count = 0
    for _, name in _walkFiles(root):
        ext = os.path.splitext(name)[1].lower()
        if ext in PHOTO_EXTENSIONS:
            photo_count += 1
        elif ext in MOVIE_EXTENSIONS:
            movie_count += 1
    return photo_count, movie_count


def findDupes(root):
    """Returns {filename: [paths]} for every filename found in more than one directory. A photo
    in several albums is downloaded once per album, so it shows up here.
    """
    seen = {}
    for dir_path, name in _walkFiles(root):
        if name == LEDGER_FILENAME:
            continue
        seen.setdefault(name, []).append(os.path.join(dir_path, name))
    return {name: paths for name, paths in seen.items() if len(paths) > 1}


def reportCount(root):
    photo_count, movie_count = countMediaFiles(root)
    updateStatus('Found {} media files, including duplicates (photos can be part of more than '
            'one album). ({} photos, {} movies)'.format(photo_count + movie_count, photo_count,
            movie_count))
    return photo_count, movie_count


def reportDupes(root):
    """Echoes every duplicate and the media count without them. Returns the number of extra
    copies found.
    """
    dupes = findDupes(root)
    total_dupes = 0
    for name in sorted(dupes):
        paths = dupes[name]
        total_dupes += len(paths) - 1
        logger.info('File "{}" was found {} times.'.format(name, len(paths)))
        for path in paths:
            updateStatus(path)

    photo_count, movie_count = countMediaFiles(root)
    updateStatus('Total dupes: {}. Real count of media files: {}'.format(total_dupes,
            photo_count + movie_count - total_dupes))
    return total_dupes
