"""flickrmirror package initialization."""

# Each module defines what it exports via __all__.
from .config import Config, Credential, loadCredential, loadSecretsStore, saveCredential
from .fetcher import RateLimitedFetcher
from .flickrwrapper import FlickrWrapper, getFlickrWrapper, Photoset, RemoteItem
from .general import LEDGER_FILENAME, NO_SET_TITLE, SyncError, VERSION
from .ledger import Ledger, LedgerEntry
from .oauth import authorize, sign, URLSigner
from .syncer import auditSet, processSet, sync
from .status import setupStatus, updateStatus
from .__main__ import cli


__doc__ = """flickrmirror keeps a local copy of a Flickr account: one directory per album, plus
NO-SET for the photos outside of any album. Each directory has a metadata.json ledger recording
which photo was saved under which filename.

* flickrmirror.Config - a class for specifying configuration settings.
* flickrmirror.getFlickrWrapper - obtains the API wrapper, authorizing the app if needed.
* flickrmirror.sync - a function that mirrors or audits the albums per config.
* flickrmirror.SyncError - the exception raised on fatal errors.

ex: Mirror everything into /backup/flickr.
config = flickrmirror.Config('/backup/flickr', store=flickrmirror.loadSecretsStore())
flickrmirror.sync(config, flickrmirror.getFlickrWrapper(config))

ex: Re-check a single album even if its file count says it's complete.
config = flickrmirror.Config('/backup/flickr', set_id='72157626216528324', force=True,
        store=flickrmirror.loadSecretsStore())
flickrmirror.sync(config, flickrmirror.getFlickrWrapper(config))

ex: Report what is out of sync without changing anything.
config = flickrmirror.Config('/backup/flickr', audit=True, store=flickrmirror.loadSecretsStore())
flickrmirror.sync(config, flickrmirror.getFlickrWrapper(config))
"""
