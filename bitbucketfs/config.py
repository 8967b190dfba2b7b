"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field

from bitbucketfs.client import SecretString
from bitbucketfs.constants import (
    API_PATH,
    DEFAULT_API_VERSION,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL,
    DEFAULT_MAX_BODY_SIZE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT,
)
from bitbucketfs.logger import log


@dataclass(frozen=True)
class RepositoryConfig:
    """
    Location of the repository exposed as a file system and the credential to use.

    The root is a directory within the repository that acts as the root of the file
    system. The revision reference ("at") is a branch, tag or commit and defaults to
    the default branch of the repository.
    """

    host: str = ""
    project_key: str = ""
    repository_slug: str = ""

    root: str = ""
    at: str = ""

    access_key: SecretString = field(default_factory=SecretString)

    scheme: str = "https"
    api_path: str = API_PATH
    api_version: str = DEFAULT_API_VERSION

    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float = DEFAULT_TIMEOUT

    @property
    def base_url(self) -> str:
        """Return the URL that all API paths are relative to."""
        api_path = self.api_path.strip("/") or API_PATH.strip("/")
        api_version = self.api_version or DEFAULT_API_VERSION

        return f"{self.scheme}://{self.host}/{api_path}/{api_version}"

    @staticmethod
    def load(section: SectionProxy) -> RepositoryConfig:
        """Load overridden variables from a section within a config file."""
        defaults = RepositoryConfig()

        return RepositoryConfig(
            host=section.get("host", fallback=defaults.host),
            project_key=section.get("project_key", fallback=defaults.project_key),
            repository_slug=section.get(
                "repository_slug", fallback=defaults.repository_slug
            ),
            root=section.get("root", fallback=defaults.root),
            at=section.get("at", fallback=defaults.at),
            access_key=SecretString(section.get("access_key", fallback="")),
            scheme=section.get("scheme", fallback=defaults.scheme),
            api_path=section.get("api_path", fallback=defaults.api_path),
            api_version=section.get("api_version", fallback=defaults.api_version),
            page_size=section.getint("page_size", fallback=defaults.page_size),
            timeout=section.getfloat("timeout", fallback=defaults.timeout),
        )


@dataclass(frozen=True)
class CacheConfig:
    """Configuration variables related to response caching."""

    max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    ttl: float = DEFAULT_CACHE_TTL
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

    @staticmethod
    def load(section: SectionProxy) -> CacheConfig:
        """Load overridden variables from a section within a config file."""
        defaults = CacheConfig()

        return CacheConfig(
            max_entries=section.getint("max_entries", fallback=defaults.max_entries),
            ttl=section.getfloat("ttl", fallback=defaults.ttl),
            max_body_size=section.getint(
                "max_body_size", fallback=defaults.max_body_size
            ),
        )


@dataclass(frozen=True)
class Config:
    """Configuration variables."""

    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @staticmethod
    def load(filename: str) -> Config:
        """Load overridden configuration variables from a config file."""
        parser = ConfigParser()

        config = Config()

        try:
            with open(filename, "r") as f:
                parser.read_string(f.read(), filename)

            repository = config.repository
            cache = config.cache

            if "repository" in parser:
                repository = RepositoryConfig.load(parser["repository"])
            if "cache" in parser:
                cache = CacheConfig.load(parser["cache"])

            config = Config(repository=repository, cache=cache)
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
        else:
            log.info(f"loaded config: {config}")

        return config
