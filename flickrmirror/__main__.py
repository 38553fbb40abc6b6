#!/usr/bin/env python3

import argparse
import datetime
import logging
import os
import sys

import flickrapi
from .config import Config
from .config import DEFAULT_CONFIG_DIR
from .config import loadSecretsStore
from .flickrwrapper import getFlickrWrapper
from .general import SyncError
from .general import VERSION
from .inventory import reportCount
from .inventory import reportDupes
from .status import setupStatus
from .status import updateStatus
from .syncer import sync


def getCmdlineArgs(argv=None):
    """Defines cmd-line arguments, parses them, and returns an object with each supplied arg name
    as a property.
    """
    parser = argparse.ArgumentParser(prog='flickrmirror',
            description='Mirror Flickr albums, and the photos outside of any album, to a local ' +
            'directory.')

    parser.add_argument('--dir', required=True, type=str,
            help='The base directory where your albums/photos will be downloaded. It must exist.')

    parser.add_argument('--set_id', default='', type=str,
            help='Only process the album with this ID.')

    parser.add_argument('--not_in_set', action='store_true',
            help='Only process the photos that are not in any album.')

    parser.add_argument('--force', action='store_true',
            help='Process every album, even those whose file count says they are in sync.')

    parser.add_argument('--audit', action='store_true',
            help='Compare Flickr, the ledger files, and the files on disk. Report differences, ' +
            'change nothing.')

    parser.add_argument('--count', action='store_true',
            help='Count the media files under --dir and exit. Makes no Flickr requests.')

    parser.add_argument('--dupes', action='store_true',
            help='List files present in more than one album directory and exit. Makes no ' +
            'Flickr requests.')

    parser.add_argument('--config_dir', default='', type=str,
            help='Directory with the secrets file (~/.config/flickrmirror if empty), the OAuth ' +
            'credential, and the default log directory.')

    parser.add_argument('--loglevel', action='store', choices=['NOTSET', 'DEBUG', 'INFO',
            'WARNING', 'ERROR'], default='INFO',
            help='Verbosity for log output to --logfile. NOTSET defers to the root logger, which ' +
            'writes WARNING and above.')

    parser.add_argument('--logfile', action='store', type=str,
            help='File to append log output to. Defaults to a dated file in the logs/ dir of ' +
            '--config_dir. Also accepts "stderr" as an option.')

    parser.add_argument('--version', action='version', version='%(prog)s ' + VERSION)

    return parser.parse_args(argv)


def setupLogging(args, config_dir):
    """Logs go to a file by default, a run that dies must be diagnosable afterwards."""
    log_format = '%(asctime)s %(name)s %(levelname)s: %(message)s'
    if args.logfile == 'stderr':
        logging.basicConfig(stream=sys.stderr, format=log_format)
    else:
        logfile = args.logfile
        if not logfile:
            log_dir = os.path.join(config_dir, 'logs')
            os.makedirs(log_dir, exist_ok=True)
            logfile = os.path.join(log_dir, 'flickrmirror-{}.log'.format(
                    datetime.date.today().strftime('%Y%m%d')))
        logging.basicConfig(filename=logfile, format=log_format)
    logging.getLogger('flickrmirror').setLevel(args.loglevel)


def cli(argv=None):
    args = getCmdlineArgs(argv)
    config_dir = os.path.expanduser(args.config_dir if args.config_dir else DEFAULT_CONFIG_DIR)

    # Setup log first.
    setupLogging(args, config_dir)
    logger = logging.getLogger('flickrmirror.cli')
    logger.info('Cmd-line args: ' + str(args))

    setupStatus()

    if args.audit:
        updateStatus('NOTE: Audit mode, no changes will be made to local files.')

    try:
        # Local-only reports don't need credentials.
        if args.count:
            reportCount(args.dir)
            return
        if args.dupes:
            reportDupes(args.dir)
            return

        # Store settings set from the args. Secrets are required before anything is signed.
        config = Config(args.dir,
            dir_=config_dir,
            set_id=args.set_id,
            force=args.force,
            audit=args.audit,
            not_in_set=args.not_in_set,
            store=loadSecretsStore(config_dir=config_dir),
        )
        config.validate()

        # Do the actual syncing.
        flickrwrapper = getFlickrWrapper(config)
        sync(config, flickrwrapper)
    except (SyncError, flickrapi.exceptions.FlickrError) as e:
        print(e, file=sys.stderr)
        logger.error(e)
        sys.exit(2)
    except Exception as e:
        # Anything else is a bug or a failed write, record the traceback before dying.
        print('Unexpected error: {}'.format(e), file=sys.stderr)
        logger.exception('Unexpected error')
        sys.exit(2)


if __name__ == '__main__':
    cli()
