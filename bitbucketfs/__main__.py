"""
Module implementing the command-line interface of bitbucketfs.

The command-line tool is a thin shell around the file system for browsing a repository
from a terminal and for checking a configuration before using it from code. The
repository is configured in a config file, with command-line arguments taking
precedence over it.
"""

import os
import signal
import sys
from typing import List, NoReturn, Optional

import bitbucketfs.constants as constants
from bitbucketfs.config import Config
from bitbucketfs.filesystem import BitbucketFileSystem
from bitbucketfs.logger import log, set_debug
import bitbucketfs.operations as operations
from .args import Arguments


def main(arguments: Optional[List[str]] = None) -> NoReturn:
    """
    Run the operation specified by the given arguments.

    Defaults to parsing command-line arguments from sys.argv if none are specified.
    """
    # Parse command-line arguments.
    args = Arguments.parse(arguments)

    # Configure debug logging.
    set_debug(args.debug)

    config = Config.load(os.path.expanduser(args.config))
    repository = args.apply(config.repository)

    fs = BitbucketFileSystem(repository, config.cache)

    try:
        operations.OPERATIONS[args.operation](fs, args)
        exit_code = 0
    except KeyboardInterrupt:
        exit_code = 128 + signal.SIGINT
    except Exception as e:
        log.error(f"failed to run {args.operation}: {e}")
        exit_code = constants.BBFS_ERROR_CODE
    finally:
        fs.client.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
