from datetime import datetime, timezone
import json

import pytest

from bitbucketfs.client.commands import (
    FetchFileContent,
    ListCommits,
    ListDirectoryEntries,
    ListTags,
    OpenRawFile,
    PageCursor,
    RemoteEntry,
    Tag,
)
from bitbucketfs.errors import ParseError, ValidationError

BASE_URL = "https://bitbucket.example.com/rest/api/latest"


def encode(doc):
    return json.dumps(doc).encode()


def test_validate_missing_project_key():
    cmd = ListTags(project_key="", repo_slug="repo")

    with pytest.raises(ValidationError) as e:
        cmd.validate()

    assert str(e.value) == "project_key is missing"


def test_validate_missing_repo_slug():
    with pytest.raises(ValidationError, match="repo_slug is missing"):
        ListDirectoryEntries(project_key="PROJ", repo_slug="").validate()


def test_validate_missing_path():
    with pytest.raises(ValidationError, match="path is missing"):
        FetchFileContent(project_key="PROJ", repo_slug="repo", path="").validate()

    with pytest.raises(ValidationError, match="path is missing"):
        OpenRawFile(project_key="PROJ", repo_slug="repo", path="").validate()


def test_validate_ok():
    ListDirectoryEntries(project_key="PROJ", repo_slug="repo").validate()
    FetchFileContent(project_key="PROJ", repo_slug="repo", path="a").validate()


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        ListTags(project_key="", repo_slug="").validate()


def test_build_url_tags():
    cmd = ListTags(project_key="P", repo_slug="R", order_by="ALPHABETICAL")

    url = cmd.build_url(BASE_URL)

    assert url == f"{BASE_URL}/projects/P/repos/R/tags?orderBy=ALPHABETICAL"


def test_build_url_omits_empty_params():
    cmd = ListDirectoryEntries(project_key="P", repo_slug="R")

    assert cmd.build_url(BASE_URL) == f"{BASE_URL}/projects/P/repos/R/browse"


def test_build_url_browse_params():
    cmd = ListDirectoryEntries(
        project_key="P", repo_slug="R", path="docs/guide", at="v1.0", start=3, limit=3
    )

    assert cmd.build_url(BASE_URL) == (
        f"{BASE_URL}/projects/P/repos/R/browse/docs/guide?at=v1.0&start=3&limit=3"
    )


def test_build_url_trailing_slash():
    cmd = ListTags(project_key="P", repo_slug="R")

    assert cmd.build_url(BASE_URL + "/") == f"{BASE_URL}/projects/P/repos/R/tags"


def test_build_url_escaping():
    cmd = FetchFileContent(
        project_key="P", repo_slug="R", path="dir/my file.txt", at="refs/heads/main"
    )

    assert cmd.build_url(BASE_URL) == (
        f"{BASE_URL}/projects/P/repos/R/raw/dir/my%20file.txt?at=refs%2Fheads%2Fmain"
    )


def test_build_url_deterministic():
    cmd_a = ListCommits(project_key="P", repo_slug="R", path="a", until="main", limit=5)
    cmd_b = ListCommits(project_key="P", repo_slug="R", path="a", until="main", limit=5)

    assert cmd_a.build_url(BASE_URL) == cmd_b.build_url(BASE_URL)


def test_build_url_single_commit():
    cmd = ListCommits(project_key="P", repo_slug="R", commit_id="abc123")

    assert cmd.build_url(BASE_URL) == f"{BASE_URL}/projects/P/repos/R/commits/abc123"


def test_at_start():
    cmd = ListTags(project_key="P", repo_slug="R", limit=3)

    next_cmd = cmd.at_start(3)

    assert next_cmd.start == 3
    assert next_cmd.limit == 3
    assert cmd.start == 0


def test_command_str():
    assert str(ListTags(project_key="P", repo_slug="R")) == "ListTags"


def test_parse_tags():
    body = encode(
        {
            "values": [
                {
                    "id": "refs/tags/v1.0",
                    "displayId": "v1.0",
                    "type": "TAG",
                    "latestCommit": "abc123",
                }
            ],
            "isLastPage": True,
            "start": 0,
            "size": 1,
            "limit": 25,
        }
    )

    page = ListTags(project_key="P", repo_slug="R").parse_response(body)

    assert page.values == [
        Tag(name="v1.0", commit_id="abc123", id="refs/tags/v1.0", type="TAG")
    ]
    assert page.cursor.is_last_page


def test_parse_file_lines():
    body = encode({"lines": [{"text": "hello"}, {"text": "world"}]})

    cmd = FetchFileContent(project_key="P", repo_slug="R", path="a.txt")

    assert cmd.parse_response(body) == b"hello\nworld\n"


def test_parse_file_empty_lines():
    body = encode({"lines": []})

    cmd = FetchFileContent(project_key="P", repo_slug="R", path="a.txt")

    assert cmd.parse_response(body) == b""


def test_parse_file_raw():
    cmd = FetchFileContent(project_key="P", repo_slug="R", path="a.txt")

    assert cmd.parse_response(b"plain\ncontents") == b"plain\ncontents"
    assert cmd.parse_response(b'{"other": 1}') == b'{"other": 1}'
    assert cmd.parse_response(b"\x00\xff") == b"\x00\xff"


def test_parse_file_json_with_lines_key():
    cmd = FetchFileContent(project_key="P", repo_slug="R", path="data.json")

    for doc in [{"lines": ["hello"]}, {"lines": [{"text": 1}]}]:
        assert cmd.parse_response(encode(doc)) == encode(doc)


def test_parse_file_null_text():
    cmd = FetchFileContent(project_key="P", repo_slug="R", path="a.txt")

    assert cmd.parse_response(encode({"lines": [{"text": None}, {}]})) == b"\n\n"


def test_parse_browse():
    body = encode(
        {
            "path": {"components": ["docs"]},
            "children": {
                "values": [
                    {
                        "path": {"components": ["guide"], "name": "guide"},
                        "type": "DIRECTORY",
                    },
                    {
                        "path": {"components": ["index.md"], "name": "index.md"},
                        "type": "FILE",
                        "size": 42,
                    },
                ],
                "start": 0,
                "isLastPage": False,
                "nextPageStart": 2,
            },
        }
    )

    page = ListDirectoryEntries(project_key="P", repo_slug="R").parse_response(body)

    assert page.values == [
        RemoteEntry(name="guide", type="DIRECTORY"),
        RemoteEntry(name="index.md", type="FILE", size=42),
    ]
    assert page.values[0].is_dir()
    assert not page.values[1].is_dir()
    assert page.cursor == PageCursor(start=0, next_page_start=2, is_last_page=False)


def test_parse_browse_name_fallback():
    body = encode(
        {"children": {"values": [{"path": {"name": "a"}, "type": "FILE", "size": 1}]}}
    )

    page = ListDirectoryEntries(project_key="P", repo_slug="R").parse_response(body)

    assert page.values == [RemoteEntry(name="a", type="FILE", size=1)]
    assert page.cursor.is_last_page


def test_parse_browse_missing_children():
    cmd = ListDirectoryEntries(project_key="P", repo_slug="R")

    with pytest.raises(ParseError):
        cmd.parse_response(encode({"path": {}}))


def test_parse_invalid_json():
    cmd = ListTags(project_key="P", repo_slug="R")

    with pytest.raises(ParseError, match="invalid JSON"):
        cmd.parse_response(b"<html>")

    with pytest.raises(ParseError):
        cmd.parse_response(b"[]")


def test_parse_wrong_field_type():
    cmd = ListTags(project_key="P", repo_slug="R")

    with pytest.raises(ParseError):
        cmd.parse_response(encode({"values": [], "start": "0"}))

    with pytest.raises(ParseError):
        cmd.parse_response(encode({"values": [], "start": True}))

    with pytest.raises(ParseError):
        cmd.parse_response(encode({"values": [{"latestCommit": "abc"}]}))


COMMIT = {
    "id": "abc123def",
    "displayId": "abc123d",
    "message": "Fix things",
    "author": {"name": "jdoe", "emailAddress": "jdoe@example.com"},
    "authorTimestamp": 1600000000000,
    "committer": {"name": "ci", "emailAddress": "ci@example.com"},
    "committerTimestamp": 1600000001000,
    "parents": [{"id": "000111", "displayId": "000"}],
}


def test_parse_commits():
    body = encode({"values": [COMMIT], "isLastPage": True, "start": 0})

    page = ListCommits(project_key="P", repo_slug="R").parse_response(body)

    commit = page.values[0]

    assert commit.id == "abc123def"
    assert commit.display_id == "abc123d"
    assert commit.message == "Fix things"
    assert commit.author.name == "jdoe"
    assert commit.author.email == "jdoe@example.com"
    assert commit.author_timestamp == datetime.fromtimestamp(1600000000, timezone.utc)
    assert commit.committer.name == "ci"
    assert commit.parents == ("000111",)


def test_parse_single_commit():
    cmd = ListCommits(project_key="P", repo_slug="R", commit_id="abc123def")

    page = cmd.parse_response(encode(COMMIT))

    assert len(page.values) == 1
    assert page.values[0].id == "abc123def"
    assert page.cursor.is_last_page


def test_parse_commit_missing_timestamp():
    commit = {"id": "abc"}

    page = ListCommits(project_key="P", repo_slug="R", commit_id="abc").parse_response(
        encode(commit)
    )

    assert page.values[0].author_timestamp is None
    assert page.values[0].author.name == ""
