"""Module defining various global constants."""

# bitbucketfs version
VERSION = "1.0.0"

# Path of the REST API on a Bitbucket Server host and the version used when none is
# configured.
API_PATH = "/rest/api"
DEFAULT_API_VERSION = "latest"

# Number of entries requested per page when browsing directories.
DEFAULT_PAGE_SIZE = 1000

# Response cache limits. Every entry costs the same regardless of its size.
DEFAULT_CACHE_MAX_ENTRIES = 10_000
DEFAULT_CACHE_TTL = 60 * 60  # 1 hour
DEFAULT_MAX_BODY_SIZE = 100 * 1024 * 1024  # 100 MiB

# Network timeout for a single request in seconds.
DEFAULT_TIMEOUT = 30.0

# Exit code for when the command-line tool fails.
BBFS_ERROR_CODE = 1
