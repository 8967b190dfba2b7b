"""
Expose a repository on a Bitbucket Server as a read-only file system.

Example:
```
config = RepositoryConfig(
    host="bitbucket.example.com",
    project_key="PROJ",
    repository_slug="repo",
    access_key=SecretString(token),
)

fs = BitbucketFileSystem(config)

for name in fs.listdir("docs"):
    print(name)

readme = fs.read_file("README.md")
```
"""

from .client import SecretString
from .config import CacheConfig, Config, RepositoryConfig
from .constants import VERSION
from .filesystem import Attributes, BitbucketFileSystem, RemoteFile

__version__ = VERSION

__all__ = [
    "Attributes",
    "BitbucketFileSystem",
    "CacheConfig",
    "Config",
    "RemoteFile",
    "RepositoryConfig",
    "SecretString",
]
