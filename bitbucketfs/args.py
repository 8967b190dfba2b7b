"""Module defining the command-line arguments and providing a parser for them."""

from __future__ import annotations

import argparse
import dataclasses
import os
from typing import List, Optional

from bitbucketfs.client import SecretString
from bitbucketfs.config import RepositoryConfig
from bitbucketfs.constants import VERSION

# Environment variable that provides the access key if it's not passed as an argument
ACCESS_KEY_ENV = "BBFS_ACCESS_KEY"


class Arguments(argparse.Namespace):
    """Parsed command-line arguments."""

    operation: str
    path: str

    config: str

    host: Optional[str]
    project: Optional[str]
    repo: Optional[str]
    at: Optional[str]
    root: Optional[str]
    access_key: Optional[str]

    limit: int
    order_by: str
    commit_id: str

    debug: bool

    @classmethod
    def parse(cls, args: Optional[List[str]] = None) -> Arguments:
        """
        Parse command-line arguments from the given list of strings.

        Defaults to sys.argv if none are specified.
        """
        return cls._get_parser().parse_args(args, namespace=cls())

    def apply(self, config: RepositoryConfig) -> RepositoryConfig:
        """Override the repository configuration with the values passed as arguments."""
        overrides = {
            "host": self.host,
            "project_key": self.project,
            "repository_slug": self.repo,
            "at": self.at,
            "root": self.root,
        }

        changes = {k: v for k, v in overrides.items() if v is not None}

        if self.access_key:
            changes["access_key"] = SecretString(self.access_key)

        return dataclasses.replace(config, **changes)

    @classmethod
    def _get_parser(cls) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="bitbucketfs",
            description="Browse a Bitbucket Server repository like a file system.",
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {VERSION}",
            help="show the program version",
        )

        # Primary arguments
        parser.add_argument(
            "operation",
            choices=["ls", "cat", "tree", "tags", "commits"],
            help="operation to perform",
        )
        parser.add_argument(
            "path", type=str, nargs="?", default=".", help="path within the repository"
        )

        # Path to (optional) config file
        parser.add_argument(
            "--config",
            type=str,
            help="path to config file (default is ~/.bitbucketfs/config)",
            default="~/.bitbucketfs/config",
        )

        # Repository location, overrides the config file
        parser.add_argument("--host", type=str, help="Bitbucket Server host name")
        parser.add_argument("--project", type=str, help="project key or ~user")
        parser.add_argument("--repo", type=str, help="repository slug")
        parser.add_argument("--at", type=str, help="branch, tag or commit")
        parser.add_argument("--root", type=str, help="directory to use as root")
        parser.add_argument(
            "--access-key",
            type=str,
            help=f"HTTP access token (default is ${ACCESS_KEY_ENV})",
            default=os.environ.get(ACCESS_KEY_ENV),
        )

        # Options for listing tags and commits
        parser.add_argument(
            "--limit",
            type=cls._parse_limit,
            help="maximum number of commits to list (default is all)",
            default=0,
        )
        parser.add_argument(
            "--order-by",
            type=str,
            help="tag ordering, ALPHABETICAL or MODIFICATION",
            default="",
        )
        parser.add_argument(
            "--commit-id", type=str, help="show a single commit", default=""
        )

        # Enable debug output for development
        parser.add_argument(
            "--debug", action="store_true", help="enable debug information"
        )

        return parser

    @staticmethod
    def _parse_limit(arg: str) -> int:
        try:
            val = int(arg)
            assert val >= 0
            return val
        except (ValueError, AssertionError):
            raise argparse.ArgumentTypeError("expected number >= 0")
