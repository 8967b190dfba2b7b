"""Module implementing the operations offered by the command-line interface."""

import sys
from typing import Callable, Dict

from bitbucketfs.args import Arguments
from bitbucketfs.filesystem import BitbucketFileSystem

# Number of bytes copied to stdout at a time by cat
COPY_SIZE = 64 * 1024


def list_directory(fs: BitbucketFileSystem, args: Arguments) -> None:
    """Print the entries of a directory, with a trailing slash for directories."""
    for node in fs.open(args.path).read_dir():
        if node.is_dir():
            print(f"{node.name}/")
        else:
            print(f"{node.name}\t{node.stat().st_size}")


def print_file(fs: BitbucketFileSystem, args: Arguments) -> None:
    """Copy the contents of a file to stdout."""
    with fs.open(args.path) as f:
        while True:
            chunk = f.read(COPY_SIZE)

            if not chunk:
                break

            sys.stdout.buffer.write(chunk)

    sys.stdout.buffer.flush()


def print_tree(fs: BitbucketFileSystem, args: Arguments) -> None:
    """Print the paths of all files below a directory."""
    for dirpath, _, filenames in fs.walk(args.path):
        for name in filenames:
            print(name if dirpath == "." else f"{dirpath}/{name}")


def list_tags(fs: BitbucketFileSystem, args: Arguments) -> None:
    """Print all tags along with the commit they point to."""
    for tag in fs.tags(order_by=args.order_by):
        print(f"{tag.name}\t{tag.commit_id}")


def list_commits(fs: BitbucketFileSystem, args: Arguments) -> None:
    """Print a one line summary of commits, most recent first."""
    path = "" if args.path == "." else args.path

    for commit in fs.commits(
        commit_id=args.commit_id, path=path, max_count=args.limit
    ):
        timestamp = commit.committer_timestamp or commit.author_timestamp
        date = timestamp.strftime("%Y-%m-%d") if timestamp else "-"
        summary = commit.message.splitlines()[0] if commit.message else ""

        commit_id = commit.display_id or commit.id

        print(f"{commit_id}\t{date}\t{commit.author.name}\t{summary}")


OPERATIONS: Dict[str, Callable[[BitbucketFileSystem, Arguments], None]] = {
    "ls": list_directory,
    "cat": print_file,
    "tree": print_tree,
    "tags": list_tags,
    "commits": list_commits,
}
