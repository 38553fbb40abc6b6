"""Configuration store, retrieval, validation, and the cached OAuth credential."""
import json
import logging
import os

from .general import SyncError

DEFAULT_CONFIG_DIR = '~/.config/flickrmirror'
SECRETS_FILENAME = 'oauth-secrets.json'
CREDENTIAL_FILENAME = 'oauth.json'


__all__ = ['Config', 'Credential', 'loadCredential', 'loadSecretsStore', 'saveCredential']
logger = logging.getLogger(__name__)


class Config():
    """Config for input to flickrmirror.sync().

    Args:
        path: Root directory of the local mirror. Each album gets a directory inside it.
        dir_: Dir with the secrets file and the cached OAuth credential.
        set_id: Only process the album with this ID. (Optional)
        force: Process albums even if they look fully synced. (Optional)
        audit: Only report differences, change nothing. (Optional)
        not_in_set: Only process the photos that aren't in any album. (Optional)
        consumer_key: Flickr API key. (Required in Config() or in the secrets file.)
        consumer_secret: Flickr API secret. (Required in Config() or in the secrets file.)
        store: Supports .get(setting_name) for reading secrets, eg. loadSecretsStore().
    """
    def __init__(self, path, dir_='', set_id='', force=False, audit=False, not_in_set=False,
            consumer_key=None, consumer_secret=None, store=None):
        # User-provided Config.
        self.path = path
        self.dir_ = os.path.expanduser(dir_ if dir_ else DEFAULT_CONFIG_DIR)
        self.set_id = set_id
        self.force = force
        self.audit = audit
        self.not_in_set = not_in_set
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret

        # Import from the data store.
        if store:
            self.fillFromStore(store)

    def __str__(self):
        # Never put the secret in the log.
        settings = dict(vars(self))
        if settings['consumer_secret']:
            settings['consumer_secret'] = '<redacted>'
        return str(settings)

    def fillFromStore(self, store):
        """Adds the app secrets from the secrets store. Only imports settings that weren't
        explicitly provided. Throws a SyncError if a required secret can't be found.

        Args:
            store: A secrets store obtained from loadSecretsStore().
        """
        if not self.consumer_key:
            logger.info('Filling setting "consumer_key" from secrets store.')
            self.consumer_key = self._loadSetting(store, 'ConsumerKey')
        if not self.consumer_secret:
            logger.info('Filling setting "consumer_secret" from secrets store.')
            self.consumer_secret = self._loadSetting(store, 'Secret')

    def _loadSetting(self, store, setting_name):
        """Load a setting from the store. Throws an exception if it isn't found."""
        setting_val = store.get(setting_name)
        if not setting_val:
            raise SyncError('Secrets store has no value for "{}"'.format(setting_name))
        return setting_val

    def validate(self):
        """Validates that the Config's existing combination of settings is valid."""
        # The app secrets must be known before any request is signed.
        if not self.consumer_key:
            raise SyncError('consumer_key must be provided, but it was not. Get one from ' +
                    'https://www.flickr.com/services/apps/create/ .')
        if not self.consumer_secret:
            raise SyncError('consumer_secret must be provided, but it was not. Get one from ' +
                    'https://www.flickr.com/services/apps/create/ .')

        if not self.path:
            raise SyncError('path must be specified, but it was not.')
        if not os.path.isdir(self.path):
            raise SyncError('Local path not found: ' + self.path)

        # The config dir must be specified.
        if not self.dir_:
            raise SyncError('dir_ must be specified, but it was not.')

        # A single album and "no album" are different scopes, only one can be chosen.
        if self.set_id and self.not_in_set:
            raise SyncError('Choose at most one of --set_id or --not_in_set. ' +
                    'What was set: set_id={}, not_in_set={}'.format(self.set_id, self.not_in_set))


class Credential():
    """An OAuth access token for one Flickr user. Stored on disk as JSON, the keys are
    CamelCase.
    """
    def __init__(self, full_name='', oauth_token='', oauth_token_secret='', user_nsid='',
            username=''):
        self.full_name = full_name
        self.oauth_token = oauth_token
        self.oauth_token_secret = oauth_token_secret
        self.user_nsid = user_nsid
        self.username = username

    def __repr__(self):
        return 'Credential(username={}, user_nsid={})'.format(self.username, self.user_nsid)

    def __eq__(self, other):
        if not isinstance(other, Credential):
            return NotImplemented
        return vars(self) == vars(other)

    @classmethod
    def fromDict(cls, d):
        return cls(full_name=d.get('FullName', ''),
                oauth_token=d.get('OAuthToken', ''),
                oauth_token_secret=d.get('OAuthTokenSecret', ''),
                user_nsid=d.get('UserNSID', ''),
                username=d.get('Username', ''))

    def toDict(self):
        return {
            'FullName': self.full_name,
            'OAuthToken': self.oauth_token,
            'OAuthTokenSecret': self.oauth_token_secret,
            'UserNSID': self.user_nsid,
            'Username': self.username,
        }


def _readJSON(file_path):
    with open(file_path, encoding='utf-8') as f:
        content = f.read()
    if not content.strip():
        return None
    try:
        return json.loads(content)
    except ValueError as e:
        raise SyncError('File {} is not valid JSON: {}'.format(file_path, e))


def loadSecretsStore(config_dir=''):
    """Reads the app secrets file. If config_dir is empty, uses a default. The file must exist
    and must not be empty, nothing can be signed without it.
    """
    dir_path = os.path.expanduser(config_dir if config_dir else DEFAULT_CONFIG_DIR)
    file_path = os.path.join(dir_path, SECRETS_FILENAME)
    if not os.path.exists(file_path):
        raise SyncError("Can't load secrets from path {}, file doesn't exist".format(file_path))
    logger.info('Reading secrets from path={}'.format(file_path))
    store = _readJSON(file_path)
    if not store:
        raise SyncError('Secrets file {} is empty'.format(file_path))
    return store


def loadCredential(config_dir):
    """Returns the cached Credential, or None if there is no usable one."""
    file_path = os.path.join(config_dir, CREDENTIAL_FILENAME)
    if not os.path.exists(file_path):
        logger.info('No cached credential at {}'.format(file_path))
        return None
    stored = _readJSON(file_path)
    if not stored:
        return None
    credential = Credential.fromDict(stored)
    if not credential.oauth_token:
        return None
    return credential


def saveCredential(config_dir, credential):
    os.makedirs(config_dir, exist_ok=True)
    file_path = os.path.join(config_dir, CREDENTIAL_FILENAME)
    logger.info('Caching credential for {} at {}'.format(credential.username, file_path))
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(credential.toDict(), f)
