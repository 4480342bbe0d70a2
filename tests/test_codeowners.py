import pytest

from review_sentinel.codeowners import (
    OwnershipRule,
    get_file_owners,
    is_team,
    parse_codeowners,
    pattern_matches,
    team_tokens,
)


@pytest.mark.parametrize(
    "content,want",
    [
        ("/foo @nikclayton", [OwnershipRule("/foo", ("@nikclayton",))]),
        (
            "# This is a comment\n/foo @nikclayton",
            [OwnershipRule("/foo", ("@nikclayton",))],
        ),
        ("/foo @bar @baz", [OwnershipRule("/foo", ("@bar", "@baz"))]),
        ("/foo\t @bar    @baz  ", [OwnershipRule("/foo", ("@bar", "@baz"))]),
        ("   # indented comment\n\n   \n*.md @docs", [OwnershipRule("*.md", ("@docs",))]),
        ("/vendor/", [OwnershipRule("/vendor/", ())]),
        ("/foo @bar\r\n/baz @qux\r\n", [
            OwnershipRule("/foo", ("@bar",)),
            OwnershipRule("/baz", ("@qux",)),
        ]),
    ],
    ids=[
        "single line",
        "comment",
        "multiple owners",
        "whitespace runs",
        "blank lines and indented comments",
        "no owners",
        "crlf",
    ],
)
def test_parse_codeowners(content, want):
    assert parse_codeowners(content) == want


def test_parse_preserves_order():
    content = "\n".join(f"/dir{i}/ @user{i}" for i in range(10))
    rules = parse_codeowners(content)
    assert [r.pattern for r in rules] == [f"/dir{i}/" for i in range(10)]
    assert [r.owners for r in rules] == [(f"@user{i}",) for i in range(10)]


def test_parse_does_not_validate_tokens():
    rules = parse_codeowners("src/ not-a-user @@weird @org/team/extra")
    assert rules == [OwnershipRule("src/", ("not-a-user", "@@weird", "@org/team/extra"))]


def test_parse_empty():
    assert parse_codeowners("") == []
    assert parse_codeowners("# only a comment\n\n") == []


@pytest.mark.parametrize(
    "content,filename,want",
    [
        ("/foo @nikclayton", "foo", ["nikclayton"]),
        ("/foo @bar @baz", "foo", ["bar", "baz"]),
        ("/foo @bar @baz\n/foo @fred", "foo", ["fred"]),
        ("foo/ @bar", "foo/bar/baz", ["bar"]),
        ("foo/*.txt @bar", "foo/test.txt", ["bar"]),
        ("foo/*.txt @bar", "foo/bar/test.txt", []),
        ("/foo @bar", "not-in-codeowners", []),
        ("/foo @ghost", "foo", []),
        ("/foo @ghost @bar", "foo", []),
        ("* @everyone\n/docs/ @ghost", "docs/index.md", []),
        ("* @everyone\n/docs/ @docs", "src/main.py", ["everyone"]),
        ("*.py @python\n/src/ @src", "src/main.py", ["src"]),
        ("/src/ @src\n*.py @python", "src/main.py", ["python"]),
        ("*.py @python", "deep/nested/dir/main.py", ["python"]),
        ("/build/logs/ @ops", "other/build/logs/x.log", []),
        ("/src/ @org/backend @alice", "src/app.py", ["org/backend", "alice"]),
        ("* @owner\n/generated/", "generated/file.py", []),
        ("/docs/** @docs", "docs/a/b/c.md", ["docs"]),
        ("foo @bar", "a/foo", ["bar"]),
    ],
    ids=[
        "single owner",
        "multiple owners",
        "last entry wins",
        "file in any subdirectory matches",
        "only immediate children are tested (1)",
        "only immediate children are tested (2)",
        "file with no owners",
        "@ghost implies no owners",
        "@ghost ignores trailing owners",
        "@ghost overrides an earlier rule",
        "earlier rule applies when later does not match",
        "later directory rule beats extension rule",
        "later extension rule beats directory rule",
        "pattern without slash matches anywhere",
        "leading slash anchors to root",
        "teams are not expanded",
        "explicitly no owners",
        "double star",
        "bare name matches at any depth",
    ],
)
def test_get_file_owners(content, filename, want):
    codeowners = parse_codeowners(content)
    assert get_file_owners(codeowners, filename) == want


def test_last_match_is_never_a_union():
    rules = parse_codeowners("/foo @a @b\n/foo @c")
    owners = get_file_owners(rules, "foo")
    assert owners == ["c"]
    assert "a" not in owners and "b" not in owners


def test_no_rules():
    assert get_file_owners([], "anything") == []


def test_pattern_matches():
    assert pattern_matches("/foo", "foo")
    assert pattern_matches("foo/", "foo/bar/baz")
    assert not pattern_matches("foo/", "foo")
    assert pattern_matches("foo/*.txt", "foo/test.txt")
    assert not pattern_matches("foo/*.txt", "foo/bar/test.txt")


def test_is_team():
    assert is_team("org/team")
    assert not is_team("user")
    assert team_tokens(["a", "org/x", "b", "org/y"]) == ["org/x", "org/y"]


def test_parse_codeowners_only_breaks_lines_on_newline():
    # a form feed does not end a CODEOWNERS line
    rules = parse_codeowners("*.py @alice\x0c@bob\n/docs/ @carol @dave\n")
    assert [rule.pattern for rule in rules] == ["*.py", "/docs/"]
    assert rules[0].owners == ("@alice", "@bob")
    assert rules[1].owners == ("@carol", "@dave")
